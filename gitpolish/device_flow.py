"""GitHub OAuth device authorization grant (RFC 8628) for terminals without a browser redirect.

DeviceAuthSession + poll_once form a state machine that never sleeps; DeviceAuthFlow.run
drives it and owns the only suspension point. Transport, clock and sleep are injected.
"""

import logging
import time
from collections.abc import Callable

from pydantic import ValidationError
from rich import print as rprint

from gitpolish.clients.github import GitHubClient
from gitpolish.errors import AuthDeniedError, AuthProtocolError, AuthTimeoutError, ProtocolError
from gitpolish.models import AuthState, DeviceAuthSession, GitHubUser

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5
SLOW_DOWN_STEP = 5  # RFC 8628 §3.5
_REQUIRED_FIELDS = ("device_code", "user_code", "verification_uri", "expires_in")


def print_instructions(session: DeviceAuthSession) -> None:
    rprint("")
    rprint(f"Open [bold cyan]{session.verification_uri}[/bold cyan] and enter the code:")
    rprint("")
    rprint(f"    [bold]{session.user_code}[/bold]")
    rprint("")
    rprint(f"[dim]Waiting for authorization (code expires in {session.expires_in // 60} min)...[/dim]")


class DeviceAuthFlow:
    def __init__(
        self,
        github: GitHubClient,
        client_id: str,
        *,
        display: Callable[[DeviceAuthSession], None] = print_instructions,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._github = github
        self._client_id = client_id
        self._display = display
        self._sleep = sleep
        self._clock = clock

    def request_device_code(self) -> DeviceAuthSession:
        payload = self._github.request_device_code(self._client_id)
        missing = [name for name in _REQUIRED_FIELDS if not payload.get(name)]
        if missing:
            reason = payload.get("error_description") or payload.get("error") or f"missing {', '.join(missing)}"
            raise ProtocolError("request device code", reason)
        try:
            expires_in = int(payload["expires_in"])
            interval = float(payload.get("interval") or DEFAULT_POLL_INTERVAL)
        except (TypeError, ValueError) as exc:
            raise ProtocolError("request device code", f"bad expires_in/interval: {exc}") from exc

        logger.debug("Device code issued; expires in %ss, interval %ss", expires_in, interval)
        try:
            return DeviceAuthSession(
                device_code=payload["device_code"],
                user_code=payload["user_code"],
                verification_uri=payload["verification_uri"],
                expires_in=expires_in,
                expires_at=self._clock() + expires_in,
                poll_interval=interval,
            )
        except ValidationError as exc:
            raise ProtocolError("request device code", str(exc)) from exc

    def display_instructions(self, session: DeviceAuthSession) -> None:
        self._display(session)

    def poll_once(self, session: DeviceAuthSession) -> DeviceAuthSession:
        """Perform one token poll and return the next session state. Never sleeps."""
        if session.is_terminal:
            raise ValueError(f"Cannot poll a session in terminal state {session.state}")
        if self._clock() > session.expires_at:
            return session.model_copy(update={"state": AuthState.EXPIRED})

        payload = self._github.poll_access_token(self._client_id, session.device_code)
        attempts = session.attempts + 1

        token = payload.get("access_token")
        if token:
            if not isinstance(token, str):
                return session.model_copy(
                    update={"state": AuthState.ERROR, "error": "access_token is not a string", "attempts": attempts}
                )
            return session.model_copy(update={"state": AuthState.AUTHORIZED, "token": token, "attempts": attempts})

        error = payload.get("error")
        match error:
            case "authorization_pending":
                return session.model_copy(update={"attempts": attempts})
            case "slow_down":
                try:
                    suggested = float(payload.get("interval") or 0)
                except (TypeError, ValueError):
                    suggested = 0.0
                interval = max(suggested, session.poll_interval + SLOW_DOWN_STEP)
                logger.debug("slow_down: poll interval %ss -> %ss", session.poll_interval, interval)
                return session.model_copy(update={"poll_interval": interval, "attempts": attempts})
            case "expired_token":
                return session.model_copy(update={"state": AuthState.EXPIRED, "attempts": attempts})
            case "access_denied":
                return session.model_copy(update={"state": AuthState.DENIED, "attempts": attempts})
            case None | "":
                reason = "response contained neither access_token nor error"
            case _:
                reason = str(payload.get("error_description") or error)
        return session.model_copy(update={"state": AuthState.ERROR, "error": reason, "attempts": attempts})

    def run(self) -> tuple[GitHubUser, str]:
        """Run the whole flow and return the authorized user and token.

        Raises AuthTimeoutError, AuthDeniedError, AuthProtocolError, or NetworkError.
        KeyboardInterrupt between polls propagates untouched.
        """
        session = self.request_device_code()
        self.display_instructions(session)

        while not session.is_terminal:
            interval = session.poll_interval  # may have grown after slow_down
            if self._clock() + interval > session.expires_at:
                raise AuthTimeoutError()
            self._sleep(interval)
            session = self.poll_once(session)
            logger.debug("Poll #%d: %s", session.attempts, session.state)

        match session.state:
            case AuthState.EXPIRED:
                raise AuthTimeoutError()
            case AuthState.DENIED:
                raise AuthDeniedError()
            case AuthState.ERROR:
                raise AuthProtocolError(session.error or "unknown error")

        assert session.token is not None
        user = self._github.with_token(session.token).get_user()
        logger.info("Authorized as %s after %d polls", user.login, session.attempts)
        return user, session.token


def run_device_flow(github: GitHubClient, client_id: str, **kwargs) -> tuple[GitHubUser, str]:
    return DeviceAuthFlow(github, client_id, **kwargs).run()
