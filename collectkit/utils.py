"""
Helpers shared by Collection and LazyCollection.

Covers settings loading, logging setup, callback arity adaptation, field
lookup on records and the value checks behind aggregates and collapse().
"""

import gc
import inspect
import logging
import numbers
import os
import time
import tracemalloc
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional

from .errors import NotFoundError, NotNumericError
from .models import CollectkitSettings

logger = logging.getLogger(__name__)

_settings: Optional[CollectkitSettings] = None


# --------- settings & logging ----------

def load_settings() -> CollectkitSettings:
    """Read COLLECTKIT_* environment variables into validated settings"""
    values: Dict[str, Any] = {}
    if "COLLECTKIT_LOG_LEVEL" in os.environ:
        values["log_level"] = os.environ["COLLECTKIT_LOG_LEVEL"]
    if os.environ.get("COLLECTKIT_RANDOM_SEED"):
        values["random_seed"] = os.environ["COLLECTKIT_RANDOM_SEED"]
    if "COLLECTKIT_LAZY_CACHE" in os.environ:
        values["lazy_cache_default"] = os.environ["COLLECTKIT_LAZY_CACHE"]
    return CollectkitSettings(**values)


def get_settings() -> CollectkitSettings:
    """Return the cached settings, loading them on first use"""
    global _settings
    if _settings is None:
        _settings = load_settings()
        logger.debug(f"Loaded settings: {_settings.model_dump()}")
    return _settings


def reset_settings(settings: Optional[CollectkitSettings] = None):
    """Replace (or drop) the cached settings"""
    global _settings
    _settings = settings


def configure_logging(settings: Optional[CollectkitSettings] = None):
    """Configure root logging at the settings' level"""
    settings = settings or get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level))
    logging.getLogger("collectkit").setLevel(settings.log_level)


# --------- callbacks ----------

def positional_arity(fn: Callable) -> Optional[int]:
    """
    Number of positional arguments fn accepts, or None when unbounded.

    Classes and callables whose signature cannot be inspected (some
    builtins) count as taking a single argument.
    """
    if inspect.isclass(fn):
        return 1
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return 1
    count = 0
    for param in sig.parameters.values():
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY,
                          inspect.Parameter.POSITIONAL_OR_KEYWORD):
            count += 1
    return count


def adapt_callback(fn: Callable, max_args: int = 2) -> Callable:
    """
    Wrap fn so it can always be called with max_args positional arguments.

    Collection callbacks are invoked as fn(value, key); a callback written
    as lambda v: ... only receives the value.
    """
    arity = positional_arity(fn)
    if arity is None or arity >= max_args:
        return fn
    if arity == 0:
        return lambda *args: fn()
    return lambda *args: fn(*args[:arity])


# --------- values ----------

def data_get(target: Any, field: str) -> Any:
    """Read a named field from a mapping or an object attribute"""
    if isinstance(target, Mapping):
        if field in target:
            return target[field]
        raise NotFoundError(f"Field {field!r} not found in {target!r}")
    try:
        return getattr(target, field)
    except AttributeError:
        raise NotFoundError(f"Field {field!r} not found on {type(target).__name__}") from None


def value_retriever(selector: Any) -> Callable[[Any, Any], Any]:
    """
    Turn a field name, callable or None into a (value, key) -> derived callable.

    Any callable selector is called, classes included: group_by(SomeClass)
    groups by SomeClass(value). Anything else is a field name for data_get.
    """
    if selector is None:
        return lambda value, key: value
    if callable(selector):
        return adapt_callback(selector)
    return lambda value, key: data_get(value, selector)


def require_number(operation: str, value: Any) -> Any:
    if not isinstance(value, numbers.Number):
        raise NotNumericError(operation, value)
    return value


def is_collapsible(value: Any) -> bool:
    """Lists, tuples, mappings and collections can be flattened one level."""
    from .collection import Collection
    return isinstance(value, (list, tuple, Mapping, Collection))


def collapsible_values(value: Any):
    """Inner values of a collapsible value, in order"""
    from .collection import Collection
    if isinstance(value, Collection):
        return value.to_list()
    if isinstance(value, Mapping):
        return list(value.values())
    return list(value)


# --------- measurement ----------

def measure_performance(operation_name: str, func, *args, **kwargs) -> Dict[str, Any]:
    """Run func once, recording time and peak traced memory"""
    tracemalloc.start()
    gc.collect()
    start_time = time.perf_counter()

    try:
        result = func(*args, **kwargs)
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        current, peak = tracemalloc.get_traced_memory()

        info = {
            "operation": operation_name,
            "execution_time_ms": execution_time_ms,
            "memory_usage_mb": peak / 1024 / 1024,
            "result": result,
            "result_size": len(result) if hasattr(result, "__len__") else None,
        }
        logger.debug(
            f"{operation_name} took {execution_time_ms:.2f}ms, peak {info['memory_usage_mb']:.2f}MB"
        )
        return info

    except Exception as e:
        logger.error(f"{operation_name} failed after {(time.perf_counter() - start_time) * 1000:.2f}ms: {e}")
        raise

    finally:
        tracemalloc.stop()
