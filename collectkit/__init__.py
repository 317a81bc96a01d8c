"""Ordered collections and lazy, pull-based pipelines with a chainable functional API."""

from .collection import MISSING, Collection, collect
from .errors import (
    CollectionError,
    EmptyCollectionError,
    InvalidArgumentError,
    LengthMismatchError,
    NotCollapsibleError,
    NotComparableError,
    NotFoundError,
    NotNumericError,
)
from .lazy import Cursor, LazyCollection
from .models import CollectkitSettings
from .utils import configure_logging, get_settings, load_settings, reset_settings

__version__ = "0.1.0"

__all__ = [
    "MISSING",
    "Collection",
    "CollectionError",
    "CollectkitSettings",
    "Cursor",
    "EmptyCollectionError",
    "InvalidArgumentError",
    "LazyCollection",
    "LengthMismatchError",
    "NotCollapsibleError",
    "NotComparableError",
    "NotFoundError",
    "NotNumericError",
    "collect",
    "configure_logging",
    "get_settings",
    "load_settings",
    "reset_settings",
]
