"""Error taxonomy shared by the GitHub/LLM clients, the device flow and the issue pipeline."""

ExtraInfoType = dict[str, str | int | float | None]


class PolishError(Exception):
    """Base class for every error raised by git-polish."""

    def __init__(self, message: str, extra_info: ExtraInfoType | None = None):
        msg = message
        if extra_info:
            msg += " (" + ", ".join(f"{key}: {value}" for key, value in extra_info.items() if value is not None) + ")"
        super().__init__(msg)


class ConfigurationError(PolishError):
    """Missing or invalid configuration (client id, API key, stored token)."""


class NetworkError(PolishError):
    """The request could not complete (connection failure, timeout)."""

    def __init__(self, action: str, message: str | None = None):
        super().__init__("A network error occurred.", extra_info={"action": action, "message": message})


class ProtocolError(PolishError):
    """The response did not have the expected shape."""

    def __init__(self, action: str, message: str | None = None):
        super().__init__("Unexpected response.", extra_info={"action": action, "message": message})


class GitHubError(PolishError):
    """GitHub answered with a non-2xx status."""

    def __init__(
        self,
        action: str,
        status_code: int,
        message: str | None = None,
        retry_after: float | None = None,
    ):
        self.action = action
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(
            f"GitHub API returned {status_code}.",
            extra_info={"action": action, "message": message, "retry_after": retry_after},
        )


class AuthenticationError(GitHubError):
    """401: the token is missing, revoked or expired."""


class RateLimitError(GitHubError):
    """403/429 caused by a primary or secondary rate limit."""


class ResourceNotFoundError(GitHubError):
    """404: the repository or file does not exist (or is not visible)."""


class AuthError(PolishError):
    """The device authorization flow did not produce a token."""


class AuthTimeoutError(AuthError):
    def __init__(self, message: str = "The device code expired before authorization completed."):
        super().__init__(message)


class AuthDeniedError(AuthError):
    def __init__(self, message: str = "Authorization was denied by the user."):
        super().__init__(message)


class AuthProtocolError(ProtocolError):
    """The token endpoint answered with an error the device flow does not handle."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__("poll access token", reason)


class LlmError(PolishError):
    """The LLM completion failed or returned no text."""


class EmptyChecklistError(PolishError):
    def __init__(self, message: str = "No checklist tasks found. Expected lines like '- [ ] task'."):
        super().__init__(message)
