"""
Import error types.

Precondition errors stop a run before any API call. Row errors fail one
document and the run moves on.
"""


class ImportPreconditionError(Exception):
    """The run cannot start."""
    pass


class MissingApiKeyError(ImportPreconditionError):
    """No API key configured. Nothing is sent to the service."""

    def __init__(self, message: str = "API key missing. Configure your Archivist API key first."):
        super().__init__(message)


class NoCampaignSelectedError(ImportPreconditionError):
    """No target campaign chosen."""

    def __init__(self, message: str = "No campaign selected."):
        super().__init__(message)


class RowImportError(Exception):
    """A single document cannot be imported."""
    pass


class MissingLoreSubtypeError(RowImportError):
    """Lore rows need a subtype before upload."""

    def __init__(self, message: str = "Lore subtype is required"):
        super().__init__(message)
