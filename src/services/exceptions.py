"""Shared exceptions for repository and service layer operations."""


class BookmarkError(Exception):
    """Base class for all bookmark lifecycle errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class InvalidArgumentError(BookmarkError):
    """
    Raised when a caller-supplied value violates a precondition.

    Examples: a non-empty id on create, an empty id on get/delete, an empty URL.
    Surfaced to API clients as 400.
    """


class NotFoundError(BookmarkError):
    """Raised when the referenced bookmark does not exist in the backend."""


class StorageError(BookmarkError):
    """Raised when a storage backend fails to complete an operation."""


class EnrichmentFailedError(BookmarkError):
    """
    Raised when a content fetcher stage fails during bookmark creation.

    Carries the stage that failed and the URL being enriched. The original
    exception is chained as ``__cause__``.
    """

    def __init__(self, stage: str, url: str, cause: BaseException) -> None:
        self.stage = stage
        self.url = url
        super().__init__(f"failed to fetch {stage} for URL {url}: {cause}")


def wrap_error(exc: BookmarkError, context: str) -> BookmarkError:
    """
    Prefix an error message with operation context, keeping the error kind.

    Enrichment failures already carry their context and are returned unchanged.
    """
    if isinstance(exc, EnrichmentFailedError):
        return exc
    return type(exc)(f"{context}: {exc}")
