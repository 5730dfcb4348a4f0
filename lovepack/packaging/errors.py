"""Error taxonomy for packaging jobs.

Every error carries a machine-readable ``kind`` and the HTTP status the API
layer answers with. The API renders them as ``{"error": ..., "kind": ...}``.
"""

from typing import Optional


class PackagingError(Exception):
    """Base class for all errors surfaced by a packaging job."""

    kind: str = "PackagingError"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class InvalidInput(PackagingError):
    """Missing or empty file list, bad paths, unsupported references."""

    kind = "InvalidInput"
    status_code = 400


class MalformedPayload(InvalidInput):
    """Inline payload (data URI or base64) could not be decoded."""

    kind = "MalformedPayload"


class InputUnavailable(PackagingError):
    kind = "InputUnavailable"
    status_code = 404


class DownloadFailed(PackagingError):
    """Remote input could not be fetched.

    ``status`` is the terminal HTTP status when there was one, ``None`` for
    transport errors and redirect-limit violations.
    """

    kind = "DownloadFailed"
    status_code = 502

    def __init__(self, reason: str, status: Optional[int] = None) -> None:
        if status is not None:
            message = f"Failed to download: {status}"
        else:
            message = f"Failed to download: {reason}"
        super().__init__(message)
        self.reason = reason
        self.status = status


class MemoryLimitExceeded(PackagingError):
    kind = "MemoryLimitExceeded"
    status_code = 413

    def __init__(self, required: int, limit: int) -> None:
        super().__init__(
            f"Memory must be >= {required} bytes (configured limit: {limit})"
        )
        self.required = required
        self.limit = limit


class ArchiveCorrupt(PackagingError):
    kind = "ArchiveCorrupt"
    status_code = 400


class UpstreamDeliveryFailure(PackagingError):
    """The external delivery store rejected or failed a request."""

    kind = "UpstreamDeliveryFailure"
    status_code = 502


class NameAlreadyTaken(PackagingError):
    kind = "NameAlreadyTaken"
    status_code = 409

    def __init__(self, name: str) -> None:
        super().__init__(f"Name '{name}' is already taken")
        self.name = name


class RuntimeAssetsMissing(PackagingError):
    """The configured runtime directory lacks a required file."""

    kind = "RuntimeAssetsMissing"
    status_code = 500


class JobCancelled(PackagingError):
    kind = "JobCancelled"
    status_code = 499
