"""
Exceptions raised by TableVec.

Every error is surfaced to the immediate caller (table creation, write or
search). Nothing here is retried automatically.
"""


class TableVecError(Exception):
    """Base exception for all TableVec errors."""
    pass


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class RegistryError(TableVecError):
    """Error registering or resolving an embedding function by name."""

    def __init__(self, message: str, name: str = None):
        super().__init__(message)
        self.name = name


class DuplicateNameError(RegistryError):
    """A function is already registered under this name and overwrite is off."""

    def __init__(self, name: str):
        super().__init__(
            f"Embedding function '{name}' is already registered. "
            f"Pass allow_overwrite=True to replace it.",
            name=name
        )


class NotFoundError(RegistryError, KeyError):
    """No function is registered under this name."""

    def __init__(self, name: str, available: list = None):
        self.available = available or []
        super().__init__(
            f"Embedding function '{name}' is not registered. "
            f"Available: {self.available}",
            name=name
        )

    def __str__(self):
        # KeyError would otherwise repr() the message
        return self.args[0]


# ---------------------------------------------------------------------------
# Families. Errors shared between the write and query paths inherit from both.
# ---------------------------------------------------------------------------

class SchemaError(TableVecError):
    """
    Error reconciling embedding definitions against a table schema.

    Raised at table creation time; a failed reconciliation leaves no
    persisted schema behind.
    """
    pass


class MaterializationError(TableVecError):
    """
    Error computing vector columns for an incoming batch.

    A failed materialization aborts the whole write; no rows are committed.
    """
    pass


class QueryEmbeddingError(TableVecError):
    """Error turning a raw query value into a query vector."""
    pass


class SourceColumnMissingError(SchemaError, MaterializationError):
    """The definition's source column is not present."""

    def __init__(self, column: str, available: list = None):
        self.column = column
        self.available = available or []
        super().__init__(
            f"Source column '{column}' not found. Available columns: {self.available}"
        )


class UnknownEmbeddingFunctionError(SchemaError, MaterializationError, QueryEmbeddingError):
    """The definition names a function the registry does not know."""

    def __init__(self, embedding_name: str, column: str = None):
        self.embedding_name = embedding_name
        self.column = column
        super().__init__(
            f"Unknown embedding function '{embedding_name}'"
            + (f" (source column '{column}')" if column else "")
        )


class IncompatibleDestTypeError(SchemaError):
    """An existing destination column does not have the function's vector type."""

    def __init__(self, column: str, expected, actual):
        self.column = column
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Destination column '{column}' has type {actual}, "
            f"embedding function produces {expected}"
        )


class IncompatibleSourceTypeError(SchemaError):
    """The source column type is not accepted by the embedding function."""

    def __init__(self, column: str, expected, actual):
        self.column = column
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Source column '{column}' has type {actual}, "
            f"embedding function expects {expected}"
        )


class DestNameCollisionError(SchemaError):
    """A destination column name clashes with another field or definition."""

    def __init__(self, column: str, reason: str = "already exists in schema"):
        self.column = column
        super().__init__(f"Destination column '{column}' {reason}")


class SchemaMismatchError(SchemaError):
    """The reconciled schema differs from the schema of an existing table."""

    def __init__(self, table_name: str, expected, actual):
        self.table_name = table_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Table '{table_name}' already exists with a different schema.\n"
            f"existing:\n{actual}\nrequested:\n{expected}"
        )


class SourceColumnHasNullsError(MaterializationError):
    """The source column contains nulls and the function cannot embed them."""

    def __init__(self, column: str, null_count: int):
        self.column = column
        self.null_count = null_count
        super().__init__(
            f"Source column '{column}' contains {null_count} null value(s); "
            f"the embedding function does not accept null sources"
        )


class EmbeddingCountMismatchError(MaterializationError):
    """The function returned a different number of vectors than it was given."""

    def __init__(self, embedding_name: str, expected: int, actual: int):
        self.embedding_name = embedding_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding function '{embedding_name}' returned {actual} vectors "
            f"for {expected} rows"
        )


class DimensionMismatchError(MaterializationError, QueryEmbeddingError):
    """A computed vector does not have the declared dimension."""

    def __init__(self, embedding_name: str, expected: int, actual: int, row: int = None):
        self.embedding_name = embedding_name
        self.expected = expected
        self.actual = actual
        self.row = row
        where = f" at row {row}" if row is not None else ""
        super().__init__(
            f"Embedding function '{embedding_name}' produced a vector of "
            f"dimension {actual}{where}, expected {expected}"
        )


class FunctionComputeFailedError(MaterializationError, QueryEmbeddingError):
    """The embedding provider itself failed. The original error is kept as `cause`."""

    def __init__(self, embedding_name: str, cause: BaseException):
        self.embedding_name = embedding_name
        self.cause = cause
        super().__init__(
            f"Embedding function '{embedding_name}' failed: "
            f"{type(cause).__name__}: {cause}"
        )


# ---------------------------------------------------------------------------
# Tables and configuration
# ---------------------------------------------------------------------------

class TableError(TableVecError):
    """Error creating, opening or dropping a table."""

    def __init__(self, message: str, table_name: str = None):
        super().__init__(message)
        self.table_name = table_name


class TableExistsError(TableError):
    """Table already exists and the creation mode is CREATE."""

    def __init__(self, table_name: str):
        super().__init__(f"Table '{table_name}' already exists", table_name=table_name)


class TableNotFoundError(TableError):
    """Table does not exist."""

    def __init__(self, table_name: str):
        super().__init__(f"Table '{table_name}' not found", table_name=table_name)


class ConfigError(TableVecError):
    """
    Error in TableVec configuration.

    Raised when:
    - A configuration file is missing or malformed
    - A configured provider is unknown
    - A required value (e.g. an API key) is not set
    """
    pass
