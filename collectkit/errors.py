"""Exceptions raised by collection and lazy collection operations."""


class CollectionError(Exception):
    """Base class for every collectkit error."""
    pass


class EmptyCollectionError(CollectionError, LookupError):
    """Raised when an operation needs at least one entry."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot {operation} on an empty collection")


class NotFoundError(CollectionError, LookupError):
    """Raised when no entry (or field) satisfies a lookup."""
    pass


class InvalidArgumentError(CollectionError, ValueError):
    """Raised for out-of-range sizes, bounds and counts."""
    pass


class LengthMismatchError(InvalidArgumentError):
    """Raised when combine() receives key and value sequences of different length."""

    def __init__(self, keys_length: int, values_length: int):
        self.keys_length = keys_length
        self.values_length = values_length
        super().__init__(
            f"Cannot combine {keys_length} keys with {values_length} values"
        )


class NotCollapsibleError(CollectionError, TypeError):
    """Raised when collapse() or flat_map() meets a value that is not a sequence."""

    def __init__(self, key, value):
        self.key = key
        self.value = value
        super().__init__(
            f"Value at key {key!r} of type {type(value).__name__} cannot be collapsed"
        )


class NotComparableError(CollectionError, TypeError):
    """Raised when values cannot be ordered against each other."""
    pass


class NotNumericError(CollectionError, TypeError):
    """Raised when a numeric aggregate meets a non-numeric value."""

    def __init__(self, operation: str, value):
        self.operation = operation
        self.value = value
        super().__init__(
            f"{operation}() requires numeric values, got {type(value).__name__}: {value!r}"
        )
