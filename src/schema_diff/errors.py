"""Error taxonomy for schema comparison runs.

Every error raised by the engine derives from ``SchemaDiffError`` so callers
(the CLI, an embedding application) can catch one base class at their
boundary.  Nothing here is retried automatically -- a retry is an explicit
re-run of the comparison.
"""


class SchemaDiffError(Exception):
    """Base class for all schema-diff errors."""

    pass


class MetadataFetchError(SchemaDiffError):
    """An introspection call failed (network, auth, permission, ...).

    Aborts the whole comparison run -- no partial ``DiffSet`` is produced.

    Attributes:
        object_identity: The object whose metadata could not be fetched,
            e.g. ``"source:shop.users"``.
        operation: Introspector operation that failed, e.g.
            ``"get_table_columns"``.
    """

    def __init__(self, object_identity: str, operation: str, cause: BaseException | None = None):
        self.object_identity = object_identity
        self.operation = operation
        self.cause = cause
        message = f"Failed to fetch metadata for {object_identity} ({operation})"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class InvalidSelectionError(SchemaDiffError):
    """Source/target selection is missing or identical.

    Raised before any metadata fetch is attempted.
    """

    pass


class ComparisonInProgressError(SchemaDiffError):
    """A comparison was requested while another one is still running."""

    pass


class ScriptGenerationError(SchemaDiffError):
    """The sync script could not be rendered from a malformed ``DiffSet``.

    Signals a programming error (invariant violation), not a user error.
    """

    pass


class UnknownDiffError(SchemaDiffError, KeyError):
    """A selection operation referenced a diff id not in the ``DiffSet``."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return Exception.__str__(self)
