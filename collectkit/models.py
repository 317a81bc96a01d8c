"""
Pydantic models for collectkit settings and operation arguments.

Argument models are validated at the call that receives them, so a bad
chunk size or slice bound fails before any entry is touched.
"""

import logging
from typing import Optional, Type, TypeVar
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import InvalidArgumentError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class CollectkitSettings(BaseModel):
    """Library-wide settings, usually loaded from the environment"""
    log_level: str = Field(
        "WARNING",
        description="Level passed to logging.basicConfig by configure_logging()"
    )
    random_seed: Optional[int] = Field(
        None,
        description="Seed for the random source used by Collection.random()"
    )
    lazy_cache_default: bool = Field(
        False,
        description="Whether new lazy collections memoize realized entries"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Normalize and check the level name."""
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {list(LOG_LEVELS)}")
        return level


class ChunkParams(BaseModel):
    """Arguments of chunk()"""
    size: int = Field(..., gt=0, description="Maximum number of entries per chunk")


class SliceParams(BaseModel):
    """Arguments of slice()"""
    offset: int = Field(..., ge=0, description="Position of the first entry to keep")
    length: Optional[int] = Field(
        None,
        ge=0,
        description="Number of entries to keep; None keeps the rest"
    )


class PageParams(BaseModel):
    """Arguments of for_page() and paginate()"""
    page: int = Field(1, ge=1, description="1-indexed page number")
    per_page: int = Field(..., ge=1, description="Entries per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


class RandomParams(BaseModel):
    """Arguments of random() when a count is requested"""
    available: int = Field(..., ge=0, description="Number of entries in the collection")
    count: int = Field(..., ge=0, description="Number of values to draw")

    @field_validator('count')
    @classmethod
    def validate_count(cls, v, info):
        """A draw can never ask for more values than there are entries."""
        available = info.data.get("available")
        if available is not None and v > available:
            raise ValueError(f"Requested {v} values but only {available} are available")
        return v


def validate_params(model: Type[ModelT], **kwargs) -> ModelT:
    """Build an argument model, turning pydantic errors into InvalidArgumentError."""
    try:
        return model(**kwargs)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or model.__name__
        message = f"Invalid {field}: {first.get('msg')}"
        logger.debug(f"Rejected {model.__name__} arguments {kwargs}: {message}")
        raise InvalidArgumentError(message) from e
