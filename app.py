"""
Stream pipeline API.

Runs declarative lazy pipelines over JSON data: a list of operations
(map/filter/skip/limit/...) referencing registered functions by name, and an
optional terminal operation (collect, count, reduce, ...).
"""

import logging
import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stream import StreamConstructionError
from utils import (
    run_pipeline, process_pagination, process_chunking, zip_sources,
    list_functions, get_performance_summary, PipelineEvaluationError
)
from models import (
    PipelineRequest, PipelineResponse, PaginationRequest, PaginationResponse,
    ChunkingRequest, ChunkingResponse, ZipRequest, ZipResponse,
    FunctionsResponse, MetricsResponse, ErrorResponse, HealthCheckResponse
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Stream Pipeline API",
    description="Lazy, pull-based pipelines over JSON data",
    version="1.0.0"
)


def _error(status_code: int, message: str, error_code: str,
           details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=message,
            error_code=error_code,
            details=details,
            timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat()
        ).model_dump()
    )


# Exception handlers for proper error responses
@app.exception_handler(StreamConstructionError)
async def stream_construction_handler(request: Request, exc: StreamConstructionError):
    return _error(400, f"Invalid stream source: {exc}", "STREAM_ERROR",
                  {"path": request.url.path})


@app.exception_handler(PipelineEvaluationError)
async def evaluation_error_handler(request: Request, exc: PipelineEvaluationError):
    logger.warning(f"{request.url.path}: {exc}")
    return _error(400, f"Evaluation failed: {exc}", "EVALUATION_ERROR", {
        "kind": exc.kind,
        "function": exc.name,
        "cause": type(exc.cause).__name__,
    })


@app.exception_handler(ValueError)
async def pipeline_error_handler(request: Request, exc: ValueError):
    return _error(400, str(exc), "PIPELINE_ERROR", {"path": request.url.path})


@app.post("/pipeline", response_model=PipelineResponse)
async def pipeline(request: PipelineRequest) -> PipelineResponse:
    """Run a pipeline and return its terminal result"""
    return PipelineResponse(**run_pipeline(request.data, request.operations, request.terminal))


@app.post("/pipeline/page", response_model=PaginationResponse)
async def pipeline_page(request: PaginationRequest) -> PaginationResponse:
    """Return one page of a pipeline's output"""
    return PaginationResponse(**process_pagination(
        request.data, request.page_number, request.page_size, request.operations
    ))


@app.post("/pipeline/chunks", response_model=ChunkingResponse)
async def pipeline_chunks(request: ChunkingRequest) -> ChunkingResponse:
    """Split a pipeline's output into chunks"""
    return ChunkingResponse(**process_chunking(
        request.data, request.chunk_size, request.max_chunks, request.operations
    ))


@app.post("/zip", response_model=ZipResponse)
async def zip_endpoint(request: ZipRequest) -> ZipResponse:
    """Zip sources position by position"""
    rows = zip_sources(request.sources)
    return ZipResponse(rows=rows, count=len(rows))


@app.get("/functions", response_model=FunctionsResponse)
async def functions() -> FunctionsResponse:
    """List registered mappers, predicates and reducers"""
    return FunctionsResponse(**list_functions())


@app.get("/metrics", response_model=MetricsResponse)
async def metrics() -> MetricsResponse:
    """Aggregate timing and memory across runs"""
    return MetricsResponse(**get_performance_summary())


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint"""
    start_time = datetime.datetime.now()
    checks = {
        "registry": bool(list_functions()["mappers"]),
    }
    response_time = (datetime.datetime.now() - start_time).total_seconds() * 1000

    return HealthCheckResponse(
        status="healthy" if all(checks.values()) else "unhealthy",
        timestamp=start_time,
        checks=checks,
        response_time_ms=response_time
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
