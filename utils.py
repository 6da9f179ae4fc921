"""
Helpers for running declarative stream pipelines.

Pipelines arrive as lists of operation steps that reference functions by
name; this module resolves the names, builds the stream, runs it and records
timing and memory for each run.
"""

import gc
import time
import logging
import operator
import tracemalloc
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from stream import Stream, END
from models import OperationStep, OperationType, TerminalStep, TerminalType

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Upper bound on source size accepted by the runners
MAX_INPUT_ITEMS = 1_000_000


# Registered functions. Entries taking ``arg`` get it bound when a step sends one.
MAPPERS: Dict[str, Callable] = {
    "identity": lambda x: x,
    "double": lambda x: x * 2,
    "square": lambda x: x * x,
    "negate": lambda x: -x,
    "add": lambda x, arg=1: x + arg,
    "multiply": lambda x, arg=2: x * arg,
    "to_string": lambda x: str(x),
    "upper": lambda x: x.upper(),
    # for peek
    "log": lambda x: logger.info(f"peek: {x!r}"),
    # flat_map helpers, each returns an iterable
    "pair": lambda x: [x, x * 2],
    "repeat": lambda x, arg=2: [x] * int(arg),
    "range": lambda x: range(int(x)),
}

PREDICATES: Dict[str, Callable] = {
    "is_even": lambda x: x % 2 == 0,
    "is_odd": lambda x: x % 2 != 0,
    "is_positive": lambda x: x > 0,
    "is_truthy": lambda x: bool(x),
    "greater_than": lambda x, arg=0: x > arg,
    "less_than": lambda x, arg=0: x < arg,
    "equals": lambda x, arg=None: x == arg,
    "multiple_of": lambda x, arg=1: x % arg == 0,
}

REDUCERS: Dict[str, Callable] = {
    "add": operator.add,
    "multiply": operator.mul,
    "max": lambda acc, x: x if x > acc else acc,
    "min": lambda acc, x: x if x < acc else acc,
    "concat": lambda acc, x: f"{acc}{x}",
}

_REGISTRIES = {
    "mapper": MAPPERS,
    "predicate": PREDICATES,
    "reducer": REDUCERS,
}


# Global performance tracking
_performance_metrics = {
    "operations": [],
    "total_time_ms": 0.0,
    "total_memory_mb": 0.0,
    "operation_count": 0
}


class PipelineEvaluationError(Exception):
    """Raised when a registered function fails on the data it was given."""

    def __init__(self, kind: str, name: str, cause: Exception):
        super().__init__(f"{kind} '{name}' failed: {cause}")
        self.kind = kind
        self.name = name
        self.cause = cause


def resolve_function(kind: str, name: str, arg: Any = None) -> Callable:
    """Look up a registered function, binding ``arg`` when given.

    Failures inside the returned function surface as PipelineEvaluationError.
    """
    registry = _REGISTRIES.get(kind)
    if registry is None:
        raise ValueError(f"Unknown function kind: {kind}")
    fn = registry.get(name)
    if fn is None:
        raise ValueError(f"Unknown {kind}: {name}")
    if arg is not None:
        fn = partial(fn, arg=arg)

    def call(*args):
        try:
            return fn(*args)
        except Exception as e:
            raise PipelineEvaluationError(kind, name, e) from e

    return call


def list_functions() -> Dict[str, List[str]]:
    return {
        "mappers": sorted(MAPPERS),
        "predicates": sorted(PREDICATES),
        "reducers": sorted(REDUCERS),
    }


def _as_step(step: Union[OperationStep, Dict[str, Any]]) -> OperationStep:
    if isinstance(step, OperationStep):
        return step
    return OperationStep.model_validate(step)


def build_pipeline(source: Any, operations: List[Union[OperationStep, Dict[str, Any]]]) -> Tuple[Stream, List[str]]:
    """Chain the given operations onto a stream over ``source``.

    Returns the outermost stage and the names of the operations applied.
    Nothing is evaluated here.
    """
    stream = Stream.of(source)
    applied = []

    for raw in operations:
        step = _as_step(raw)
        op = step.type

        if op == OperationType.MAP:
            stream = stream.map(resolve_function("mapper", step.function, step.arg))
        elif op == OperationType.FLAT_MAP:
            stream = stream.flat_map(resolve_function("mapper", step.function, step.arg))
        elif op == OperationType.PEEK:
            observer = resolve_function("mapper", step.function, step.arg)
            stream = stream.peek(observer)
        elif op == OperationType.FILTER:
            stream = stream.filter(resolve_function("predicate", step.function, step.arg))
        elif op == OperationType.TAKE_WHILE:
            stream = stream.take_while(resolve_function("predicate", step.function, step.arg))
        elif op == OperationType.SKIP_WHILE:
            stream = stream.skip_while(resolve_function("predicate", step.function, step.arg))
        elif op == OperationType.SKIP:
            stream = stream.skip(step.count)
        elif op == OperationType.LIMIT:
            stream = stream.limit(step.count)
        elif op == OperationType.BATCH:
            stream = stream.batch(step.size)
        else:
            raise ValueError(f"Unknown op: {op}")

        applied.append(op.value)

    return stream, applied


def apply_terminal(stream: Stream, terminal: Optional[TerminalStep] = None) -> Any:
    """Run a terminal operation. May return END."""
    terminal = terminal or TerminalStep()
    kind = terminal.type

    if kind == TerminalType.COLLECT:
        return stream.collect()
    if kind == TerminalType.COUNT:
        return stream.count()
    if kind == TerminalType.SUM:
        return stream.sum()
    if kind == TerminalType.MIN:
        return stream.min()
    if kind == TerminalType.MAX:
        return stream.max()
    if kind == TerminalType.FIRST:
        return stream.first()
    if kind == TerminalType.LAST:
        return stream.last()
    if kind == TerminalType.REDUCE:
        reducer = resolve_function("reducer", terminal.function)
        if terminal.has_initial():
            return stream.reduce(reducer, terminal.initial)
        return stream.reduce(reducer)

    pred = resolve_function("predicate", terminal.function, terminal.arg)
    if kind == TerminalType.ANY_MATCH:
        return stream.any_match(pred)
    if kind == TerminalType.NONE_MATCH:
        return stream.none_match(pred)
    if kind == TerminalType.ALL_MATCH:
        return stream.all_match(pred)
    if kind == TerminalType.FIND_FIRST:
        return stream.find_first(pred)
    raise ValueError(f"Unknown terminal: {kind}")


def _check_input_size(source_data: List[Any]) -> None:
    if len(source_data) > MAX_INPUT_ITEMS:
        raise ValueError(f"Input has {len(source_data)} items, limit is {MAX_INPUT_ITEMS}")


def _record(info: Dict[str, Any]) -> None:
    _performance_metrics["operations"].append(info)
    _performance_metrics["total_time_ms"] += info["processing_time_ms"]
    _performance_metrics["total_memory_mb"] += info["memory_usage_mb"]
    _performance_metrics["operation_count"] += 1


def measure_performance(operation_name: str, func: Callable, *args, **kwargs) -> Tuple[Any, Dict[str, Any]]:
    """Call ``func`` while tracking time and peak memory.

    Returns ``(result, info)``. Failures are recorded and re-raised.
    """
    tracemalloc.start()
    gc.collect()
    start_time = time.perf_counter()
    success = False

    try:
        result = func(*args, **kwargs)
        success = True
        return result, _finish(operation_name, start_time, success)
    except Exception as e:
        logger.error(f"{operation_name} failed: {e}")
        _finish(operation_name, start_time, success, error=str(e))
        raise
    finally:
        tracemalloc.stop()


def _finish(operation_name: str, start_time: float, success: bool, error: Optional[str] = None) -> Dict[str, Any]:
    execution_time_ms = (time.perf_counter() - start_time) * 1000
    _, peak = tracemalloc.get_traced_memory()
    info = {
        "operation": operation_name,
        "processing_time_ms": execution_time_ms,
        "memory_usage_mb": peak / 1024 / 1024,
        "success": success,
        "timestamp": time.time()
    }
    if error is not None:
        info["error"] = error
    _record(info)
    return info


def get_performance_summary() -> Dict[str, Any]:
    """Get summary of all performance metrics"""
    count = _performance_metrics["operation_count"]
    if count == 0:
        return {
            "total_operations": 0,
            "total_time_ms": 0.0,
            "total_memory_mb": 0.0,
            "avg_time_ms": 0.0,
            "avg_memory_mb": 0.0
        }

    return {
        "total_operations": count,
        "total_time_ms": _performance_metrics["total_time_ms"],
        "total_memory_mb": _performance_metrics["total_memory_mb"],
        "avg_time_ms": _performance_metrics["total_time_ms"] / count,
        "avg_memory_mb": _performance_metrics["total_memory_mb"] / count
    }


def clear_performance_metrics():
    """Clear all performance metrics"""
    global _performance_metrics
    _performance_metrics = {
        "operations": [],
        "total_time_ms": 0.0,
        "total_memory_mb": 0.0,
        "operation_count": 0
    }


def _performance(info: Dict[str, Any], input_size: int, output_size: Optional[int]) -> Dict[str, Any]:
    return {
        "processing_time_ms": info["processing_time_ms"],
        "memory_usage_mb": info["memory_usage_mb"],
        "input_size": input_size,
        "output_size": output_size,
        "operation": info["operation"],
    }


def run_pipeline(source_data: List[Any], operations: List[Union[OperationStep, Dict[str, Any]]],
                 terminal: Optional[TerminalStep] = None) -> Dict[str, Any]:
    """Build and run a pipeline.

    ``result`` is None and ``exhausted`` True when the terminal yielded END.
    """
    _check_input_size(source_data)
    terminal = terminal or TerminalStep()
    stream, applied = build_pipeline(source_data, operations)

    result, info = measure_performance(f"pipeline_{terminal.type.value}", apply_terminal, stream, terminal)
    exhausted = result is END
    if exhausted:
        result = None
    output_size = len(result) if isinstance(result, list) else None

    logger.info(f"Ran pipeline {applied} -> {terminal.type.value} over {len(source_data)} items")

    return {
        "result": result,
        "exhausted": exhausted,
        "terminal": terminal.type,
        "operations_applied": applied,
        "performance": _performance(info, len(source_data), output_size),
    }


def process_pagination(source_data: List[Any], page_number: int, page_size: int,
                       operations: Optional[List[Union[OperationStep, Dict[str, Any]]]] = None) -> Dict[str, Any]:
    """Return one page of the pipeline's output.

    One element past the page is pulled to tell whether a next page exists.
    """
    _check_input_size(source_data)
    stream, applied = build_pipeline(source_data, operations or [])
    if page_number < 1:
        raise ValueError("Page number must be >= 1")
    window = stream.skip((page_number - 1) * page_size).limit(page_size + 1)

    items, info = measure_performance(f"pagination_page_{page_number}_size_{page_size}", window.collect)
    page_data = items[:page_size]

    return {
        "page_data": page_data,
        "current_page": page_number,
        "page_size": page_size,
        "has_next_page": len(items) > page_size,
        "has_previous_page": page_number > 1,
        "operations_applied": applied,
        "performance": _performance(info, len(source_data), len(page_data)),
    }


def process_chunking(source_data: List[Any], chunk_size: int, max_chunks: Optional[int] = None,
                     operations: Optional[List[Union[OperationStep, Dict[str, Any]]]] = None) -> Dict[str, Any]:
    """Split the pipeline's output into chunks, optionally stopping after ``max_chunks``."""
    _check_input_size(source_data)
    stream, applied = build_pipeline(source_data, operations or [])
    chunked = stream.chunk(chunk_size)
    if max_chunks is not None:
        chunked = chunked.limit(max_chunks)

    chunks, info = measure_performance(f"chunking_size_{chunk_size}", chunked.collect)
    chunks_as_lists = [list(chunk) for chunk in chunks]
    total_items = sum(len(chunk) for chunk in chunks_as_lists)

    return {
        "chunks": chunks_as_lists,
        "total_chunks": len(chunks_as_lists),
        "total_items": total_items,
        "chunk_size": chunk_size,
        "max_chunks": max_chunks,
        "operations_applied": applied,
        "performance": _performance(info, len(source_data), total_items),
    }


def zip_sources(sources: List[List[Any]]) -> List[List[Any]]:
    """Zip lists position by position, truncating to the shortest."""
    zipped = Stream.zip([Stream.of(source) for source in sources])
    return [list(row) for row in zipped]
