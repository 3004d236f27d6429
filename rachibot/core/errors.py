"""Error taxonomy for command interpretation.

Every failure that should reach the caller is a :class:`CommandError`
carrying the HTTP status code the web layer answers with. Handlers raise
as soon as they detect a problem; nothing is retried or rolled back.
"""

from typing import Any


class CommandError(Exception):
    """Base class for errors surfaced to the caller.

    Attributes:
        status_code: HTTP status code for the response.
        message: Human-readable message returned to the caller.
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status_code, "detail": self.message}


class InvalidCommand(CommandError):
    """Malformed command syntax or arguments."""

    status_code = 400


class ChainTooDeep(CommandError):
    """Alias resolution exceeded the depth bound."""

    status_code = 400


class NoUserMessage(CommandError):
    """The assembled model call carries no user content."""

    status_code = 400


class NotFoundError(CommandError):
    """A required store entry or upstream item is missing."""

    status_code = 404


class KeyNotFound(NotFoundError):
    """A ``key:<name>`` lookup found nothing."""


class AliasNotFound(NotFoundError):
    """An alias hop ``key:/<name>`` is missing.

    Attributes:
        chain: The chain walked so far, ending with the missing name.
    """

    def __init__(self, message: str, chain: list[str]) -> None:
        super().__init__(message)
        self.chain = list(chain)


class TagPromptNotFound(NotFoundError):
    """A tag is set but ``key:#<tag>`` holds no system prompt."""


class ForbiddenError(CommandError):
    """An administrative switch or credential denies the operation."""

    status_code = 403


class EndpointDisabled(ForbiddenError):
    """The endpoint kill switch is tripped."""


class AuthorizationMissing(ForbiddenError):
    """A required upstream credential is not configured in the store."""


class UpstreamFailure(CommandError):
    """A collaborator fetch or model call failed or returned an unexpected shape."""

    status_code = 502
