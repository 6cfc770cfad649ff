"""Error taxonomy shared by auth, remote operations and the menu dispatcher."""


class GraphTutorialError(Exception):
    """Base class for errors raised by this package."""


class NotInitialized(GraphTutorialError):
    """An operation ran before the credential store / remote session was ready."""

    def __init__(self, message: str = "Graph has not been initialized for user auth"):
        super().__init__(message)


class InvalidConfiguration(GraphTutorialError):
    """Settings are missing or malformed (client id, tenant, scopes)."""


class AuthenticationFailure(GraphTutorialError):
    """Device code sign-in failed, expired or was cancelled."""


class RemoteOperationFailure(GraphTutorialError):
    """A Graph call (profile, mail, drive, link, upload slice) failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class MalformedInput(GraphTutorialError):
    """A menu selector could not be parsed as an integer."""
