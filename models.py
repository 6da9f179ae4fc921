"""Models for the stream pipeline API."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from datetime import datetime
from enum import Enum


class OperationType(str, Enum):
    """Lazy (chainable) operations"""
    MAP = "map"
    FLAT_MAP = "flat_map"
    FILTER = "filter"
    PEEK = "peek"
    TAKE_WHILE = "take_while"
    SKIP_WHILE = "skip_while"
    SKIP = "skip"
    LIMIT = "limit"
    BATCH = "batch"


class TerminalType(str, Enum):
    """Operations that drive the pipeline to completion"""
    COLLECT = "collect"
    COUNT = "count"
    SUM = "sum"
    MIN = "min"
    MAX = "max"
    FIRST = "first"
    LAST = "last"
    REDUCE = "reduce"
    ANY_MATCH = "any_match"
    NONE_MATCH = "none_match"
    ALL_MATCH = "all_match"
    FIND_FIRST = "find_first"


# Operations that need a mapper or predicate from the registry
FUNCTION_OPERATIONS = {
    OperationType.MAP, OperationType.FLAT_MAP, OperationType.FILTER,
    OperationType.PEEK, OperationType.TAKE_WHILE, OperationType.SKIP_WHILE,
}
PREDICATE_TERMINALS = {
    TerminalType.ANY_MATCH, TerminalType.NONE_MATCH,
    TerminalType.ALL_MATCH, TerminalType.FIND_FIRST,
}
FUNCTION_TERMINALS = PREDICATE_TERMINALS | {TerminalType.REDUCE}


class OperationStep(BaseModel):
    """One stage of a declarative pipeline."""
    type: OperationType = Field(..., description="Operation to apply")
    function: Optional[str] = Field(
        None,
        description="Registered function name (map/flat_map/filter/peek/take_while/skip_while)"
    )
    arg: Optional[Any] = Field(
        None,
        description="Optional argument bound to the registered function"
    )
    count: Optional[int] = Field(
        None,
        description="Element count for skip/limit",
        ge=0
    )
    size: Optional[int] = Field(
        None,
        description="Batch size",
        ge=1
    )

    @field_validator('function')
    @classmethod
    def validate_function(cls, v):
        """Function name cannot be blank"""
        if v is not None and not v.strip():
            raise ValueError("Function name cannot be empty")
        return v.strip() if v else v

    @model_validator(mode='after')
    def validate_parameters(self):
        """Each operation gets the parameter it needs."""
        if self.type in FUNCTION_OPERATIONS and not self.function:
            raise ValueError(f"{self.type.value} requires a function")
        if self.type in (OperationType.SKIP, OperationType.LIMIT) and self.count is None:
            raise ValueError(f"{self.type.value} requires a count")
        if self.type == OperationType.BATCH and self.size is None:
            raise ValueError("batch requires a size")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"type": "map", "function": "multiply", "arg": 3}
        }
    )


class TerminalStep(BaseModel):
    """Terminal operation; collect when omitted."""
    type: TerminalType = Field(TerminalType.COLLECT, description="Terminal operation")
    function: Optional[str] = Field(None, description="Registered reducer or predicate name")
    arg: Optional[Any] = Field(None, description="Optional argument bound to the predicate")
    initial: Optional[Any] = Field(
        None,
        description="Initial accumulator for reduce; omit to seed with the first element"
    )

    @model_validator(mode='after')
    def validate_function_required(self):
        if self.type in FUNCTION_TERMINALS and not self.function:
            raise ValueError(f"{self.type.value} requires a function")
        if self.arg is not None and self.type not in PREDICATE_TERMINALS:
            raise ValueError(f"{self.type.value} does not take an arg")
        if self.has_initial() and self.type != TerminalType.REDUCE:
            raise ValueError(f"{self.type.value} does not take an initial value")
        return self

    def has_initial(self) -> bool:
        """True when an initial value was sent, even an explicit null."""
        return "initial" in self.model_fields_set


class PipelineRequest(BaseModel):
    """Source data plus the operations to run over it."""
    data: List[Any] = Field(..., description="Source elements")
    operations: List[OperationStep] = Field(
        default_factory=list,
        description="Chain of lazy operations, applied in order"
    )
    terminal: TerminalStep = Field(
        default_factory=TerminalStep,
        description="Terminal operation"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "data": [1, 2, 3, 4, 5, 6],
                "operations": [
                    {"type": "filter", "function": "is_even"},
                    {"type": "map", "function": "square"}
                ],
                "terminal": {"type": "reduce", "function": "add"}
            }
        }
    )


class PaginationRequest(BaseModel):
    """Fetch one page of a pipeline's output."""
    data: List[Any] = Field(..., description="Source elements")
    page_number: int = Field(1, description="Page number (1-indexed)", ge=1)
    page_size: int = Field(10, description="Elements per page", ge=1)
    operations: List[OperationStep] = Field(default_factory=list)


class ChunkingRequest(BaseModel):
    """Split a pipeline's output into fixed-size chunks."""
    data: List[Any] = Field(..., description="Source elements")
    chunk_size: int = Field(..., description="Elements per chunk", ge=1)
    max_chunks: Optional[int] = Field(None, description="Stop after this many chunks", ge=1)
    operations: List[OperationStep] = Field(default_factory=list)


class ZipRequest(BaseModel):
    """Sources to zip position by position."""
    sources: List[List[Any]] = Field(..., description="Lists to zip, in order")


class PerformanceInfo(BaseModel):
    """Timing and memory for one run."""
    processing_time_ms: float = Field(..., ge=0)
    memory_usage_mb: float = Field(..., ge=0)
    input_size: int = Field(..., ge=0)
    output_size: Optional[int] = Field(None, ge=0)
    operation: str = Field(..., description="Operation label")


class PipelineResponse(BaseModel):
    """Result of a pipeline run."""
    ok: bool = Field(True)
    result: Any = Field(None, description="Terminal result (a list for collect)")
    exhausted: bool = Field(
        False,
        description="True when the terminal produced no value (empty reduce, no match)"
    )
    terminal: TerminalType = Field(..., description="Terminal operation used")
    operations_applied: List[str] = Field(default_factory=list)
    performance: PerformanceInfo


class PaginationResponse(BaseModel):
    """One page plus navigation hints."""
    ok: bool = Field(True)
    page_data: List[Any] = Field(default_factory=list)
    current_page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    has_next_page: bool
    has_previous_page: bool
    operations_applied: List[str] = Field(default_factory=list)
    performance: PerformanceInfo


class ChunkingResponse(BaseModel):
    """Chunks of a pipeline's output."""
    ok: bool = Field(True)
    chunks: List[List[Any]] = Field(default_factory=list)
    total_chunks: int = Field(..., ge=0)
    total_items: int = Field(..., ge=0)
    chunk_size: int = Field(..., ge=1)
    max_chunks: Optional[int] = None
    operations_applied: List[str] = Field(default_factory=list)
    performance: PerformanceInfo


class ZipResponse(BaseModel):
    ok: bool = Field(True)
    rows: List[List[Any]] = Field(default_factory=list)
    count: int = Field(..., ge=0)


class FunctionsResponse(BaseModel):
    """Names usable in operation and terminal steps."""
    mappers: List[str]
    predicates: List[str]
    reducers: List[str]


class MetricsResponse(BaseModel):
    total_operations: int = Field(..., ge=0)
    total_time_ms: float = Field(..., ge=0)
    total_memory_mb: float = Field(..., ge=0)
    avg_time_ms: float = Field(..., ge=0)
    avg_memory_mb: float = Field(..., ge=0)


class ErrorResponse(BaseModel):
    """Standard error envelope."""
    ok: bool = Field(False, description="Request success status")
    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Error details")
    timestamp: str = Field(..., description="Error timestamp in ISO format")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": False,
                "error": "Unknown mapper: cube",
                "error_code": "PIPELINE_ERROR",
                "timestamp": "2024-01-01T12:00:00+00:00"
            }
        }
    )


class HealthCheckResponse(BaseModel):
    """Health check result."""
    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    checks: Dict[str, bool] = Field(..., description="Individual health check results")
    response_time_ms: float = Field(..., ge=0)
