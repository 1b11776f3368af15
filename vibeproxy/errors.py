"""Error types raised by vibeproxy components."""

from typing import Optional


class VibeProxyError(Exception):
    """Base class for every error raised by vibeproxy."""


class UpstreamError(VibeProxyError):
    """A third-party API call failed or returned a non-2xx status."""

    def __init__(self, service: str, status: Optional[int] = None, body: Optional[str] = None):
        self.service = service
        self.status = status
        self.body = body

        msg = f"{service} request failed"
        if status is not None:
            msg += f" with status {status}"
        if body:
            msg += f": {body[:500]}"
        super().__init__(msg)


class ParseError(VibeProxyError):
    """Model output did not parse as the expected structured shape."""

    def __init__(self, message: str, raw: str):
        self.raw = raw
        super().__init__(message)


class NotFoundError(VibeProxyError):
    """An unknown project, workspace or session identifier."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} not found: {identifier}")


class PartialSyncError(VibeProxyError):
    """Some file mirrors to the remote repository failed while others succeeded."""

    def __init__(self, failures: dict[str, str]):
        self.failures = failures
        paths = ", ".join(failures)
        super().__init__(f"Failed to sync {len(failures)} file(s): {paths}")


class PatchError(VibeProxyError):
    """A unified diff could not be applied to a workspace file."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Cannot patch {path}: {reason}")
