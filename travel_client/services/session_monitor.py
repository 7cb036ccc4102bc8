"""Authentication session lifecycle kept in step with the identity provider.

The monitor caches the last known :class:`Session` and re-validates it on a
fixed interval. Listeners are only told about a change when the session
appears, disappears, or switches to another user, so a steady polling loop
causes no UI churn. Explicit auth calls hold ``self._lock`` and advance a
generation counter: a periodic tick that finds the lock taken is skipped, and
a validation that was already in flight when an auth call began is discarded
instead of overwriting the newer session.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from travel_client.errors import AuthError, GatewayError, ValidationError
from travel_client.gateway.protocol import RemoteGateway
from travel_client.gateway.query import Eq
from travel_client.schemas.session import DEFAULT_DISPLAY_NAME, DEFAULT_EMAIL, Session
from travel_client.services.observable import ChangeKind, ObservableService
from travel_client.settings import get_settings
from travel_client.utils.text import normalize_email

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"


def _require(value: str, message: str) -> None:
    if not value or not value.strip():
        raise ValidationError(message)


class SessionMonitor(ObservableService):
    """Owns the current session and the polling task that validates it."""

    source_name = "session"

    def __init__(
        self,
        gateway: RemoteGateway,
        *,
        poll_interval: float | None = None,
    ) -> None:
        super().__init__()
        if poll_interval is None:
            poll_interval = get_settings().session_poll_interval_seconds
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._gateway = gateway
        self._poll_interval = poll_interval
        self._session: Session | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._start_lock = asyncio.Lock()
        self._generation = 0

    # -- read side ------------------------------------------------------------

    def current_session(self) -> Session | None:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def user_id(self) -> str | None:
        return self._session.user_id if self._session is not None else None

    @property
    def display_name(self) -> str:
        return self._session.display_name if self._session is not None else DEFAULT_DISPLAY_NAME

    @property
    def email(self) -> str:
        return self._session.email if self._session is not None else DEFAULT_EMAIL

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    # -- polling --------------------------------------------------------------

    async def start(self) -> None:
        """Validate immediately, then keep validating every ``poll_interval`` seconds.

        Calling ``start`` again replaces the running loop.
        """

        async with self._start_lock:
            await self.stop()
            await self.check_session()
            logger.info("Starting session polling every %.1fs", self._poll_interval)
            task = asyncio.create_task(self._poll_loop(), name="session-poll")
            task.add_done_callback(self._on_poll_done)
            self._poll_task = task

    async def stop(self) -> None:
        """Cancel the polling loop; a no-op when it is not running."""

        task, self._poll_task = self._poll_task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Session polling stopped")

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            if self._lock.locked():
                logger.debug("Auth call in flight; skipping session poll tick")
                continue
            await self.check_session()

    @staticmethod
    def _on_poll_done(task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Session polling task failed: %s", exc, exc_info=exc)

    async def check_session(self) -> Session | None:
        """Ask the gateway for the current session and reconcile the cache.

        Any gateway failure counts as logged out. The result is dropped when
        an explicit auth call started or finished while the check was waiting.
        """

        generation = self._generation
        try:
            remote = await self._gateway.get_session()
        except GatewayError as exc:
            logger.warning("Session check failed; treating as logged out: %s", exc.message)
            remote = None
        if generation != self._generation or self._lock.locked():
            logger.debug("Discarding session check overtaken by an auth call")
            return self._session
        self._apply_session(remote)
        return self._session

    @contextlib.asynccontextmanager
    async def _auth_call(self) -> AsyncIterator[None]:
        async with self._lock:
            self._generation += 1
            try:
                yield
            finally:
                self._generation += 1

    def _apply_session(self, session: Session | None) -> None:
        previous = self._session
        self._session = session
        presence_changed = (previous is None) != (session is None)
        user_changed = (
            previous is not None and session is not None and previous.user_id != session.user_id
        )
        if presence_changed or user_changed:
            logger.info("Session state changed: %s", "logged in" if session else "logged out")
            self._notify(ChangeKind.SESSION)

    def _require_session(self) -> Session:
        if self._session is None:
            raise AuthError("You need to be logged in to do that.")
        return self._session

    # -- explicit auth calls --------------------------------------------------

    async def sign_in(self, email: str, password: str) -> bool:
        email = normalize_email(email)
        async with self._auth_call():
            async with self.operation("sign_in", prefix="Login failed") as outcome:
                _require(email, "Please enter your email address.")
                _require(password, "Please enter your password.")
                session = await self._gateway.sign_in(email, password)
                self._apply_session(session)
        if outcome.succeeded:
            logger.info("Sign in succeeded")
        return outcome.succeeded

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: str,
        *,
        confirm_password: str | None = None,
    ) -> bool:
        """Register a new account; the session is cached when the provider issues one."""

        email = normalize_email(email)
        async with self._auth_call():
            async with self.operation("sign_up", prefix="Sign up failed") as outcome:
                _require(display_name, "Please enter your full name.")
                _require(email, "Please enter your email address.")
                _require(password, "Please choose a password.")
                if confirm_password is not None and confirm_password != password:
                    raise ValidationError("Passwords do not match.")
                result = await self._gateway.sign_up(
                    email, password, {"full_name": display_name.strip()}
                )
                if result.session is not None:
                    self._apply_session(result.session)
                else:
                    logger.info("Sign up succeeded; email confirmation pending")
        return outcome.succeeded

    async def sign_out(self) -> bool:
        async with self._auth_call():
            async with self.operation("sign_out", prefix="Sign out failed") as outcome:
                await self._gateway.sign_out()
                self._apply_session(None)
        if not outcome.succeeded:
            # The remote call failed, so the cache may be stale either way.
            await self.check_session()
        return outcome.succeeded

    async def reset_password(self, email: str) -> bool:
        email = normalize_email(email)
        async with self._auth_call():
            async with self.operation(
                "reset_password", prefix="Failed to send reset link"
            ) as outcome:
                _require(email, "Please enter your email address.")
                await self._gateway.reset_password_for_email(email)
        return outcome.succeeded

    async def update_password(self, new_password: str) -> bool:
        async with self._auth_call():
            async with self.operation(
                "update_password", prefix="Failed to update password"
            ) as outcome:
                _require(new_password, "Please choose a new password.")
                self._require_session()
                await self._gateway.update_user(password=new_password)
        return outcome.succeeded

    async def verify_current_password(self, current_password: str) -> bool:
        """Re-authenticate with the session email to confirm ``current_password``."""

        async with self._auth_call():
            async with self.operation("verify_current_password") as outcome:
                _require(current_password, "Please enter your current password.")
                session = self._require_session()
                try:
                    refreshed = await self._gateway.sign_in(session.email, current_password)
                except AuthError as exc:
                    raise AuthError(
                        "Current password is incorrect.", status_code=exc.status_code
                    ) from exc
                self._apply_session(refreshed)
        return outcome.succeeded

    async def update_display_name(self, full_name: str) -> bool:
        """Rename the user in the profiles table and in the auth metadata."""

        async with self._auth_call():
            async with self.operation(
                "update_display_name", prefix="Failed to update profile"
            ) as outcome:
                _require(full_name, "Please enter your full name.")
                session = self._require_session()
                name = full_name.strip()
                await self._gateway.update(
                    PROFILES_TABLE, {"full_name": name}, filters=[Eq("id", session.user_id)]
                )
                metadata = {**session.user.user_metadata, "full_name": name}
                user = await self._gateway.update_user(metadata=metadata)
                if self._session is not None:
                    self._session = self._session.model_copy(update={"user": user})
                    self._notify(ChangeKind.SESSION)
        return outcome.succeeded


__all__ = ["PROFILES_TABLE", "SessionMonitor"]
