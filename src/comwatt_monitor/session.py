"""Authentication session and remembered-user re-login."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from comwatt_monitor.client.api import ComwattApi, Session
from comwatt_monitor.client.errors import ApiError
from comwatt_monitor.client.password import Password
from comwatt_monitor.db.repository import Repository
from comwatt_monitor.result import Result, Success
from comwatt_monitor.settings_store import SettingsStore

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns the in-memory session.

    Only the password hash of the remembered user is persisted; the
    session itself is re-derived by authenticating again.
    """

    def __init__(self, api: ComwattApi, repo: Repository, settings: SettingsStore) -> None:
        self._api = api
        self._repo = repo
        self._settings = settings
        self._session: Session | None = None
        self._pending: set[asyncio.Task[bool]] = set()

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_logged_in(self) -> bool:
        return self._session is not None and not self._session.is_expired()

    async def login(self, email: str, password: str, remember: bool = True) -> Result[Session, ApiError]:
        encoded = Password(password)
        result = await self._api.authenticate(email, encoded)
        if isinstance(result, Success):
            self._session = result.value
            if remember:
                await self._repo.remember_user(email, encoded.encoded_value)
        else:
            logger.warning("Login failed for %s: %s", email, result.error.error_message)
        return result

    def try_auto_login(
        self,
        on_success: Callable[[], None] | None = None,
        on_failure: Callable[[str | None], None] | None = None,
        invalidate: bool = False,
    ) -> asyncio.Task[bool]:
        """Re-authenticate the remembered user in a detached task.

        The caller does not await the task. Concurrent attempts are allowed;
        the last successful one wins. Failures are logged and handed to
        ``on_failure``, never raised.
        """
        if invalidate:
            self._session = None
        task = asyncio.create_task(self._auto_login(on_success, on_failure), name="auto-login")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _auto_login(
        self,
        on_success: Callable[[], None] | None,
        on_failure: Callable[[str | None], None] | None,
    ) -> bool:
        try:
            user = await self._repo.get_remembered_user()
            if user is None:
                logger.warning("Auto-login skipped: no remembered user")
                if on_failure:
                    on_failure(None)
                return False

            result = await self.login(user["email"], user["password_hash"])
            if isinstance(result, Success):
                logger.info("Auto-login succeeded for %s", user["email"])
                if on_success:
                    on_success()
                return True

            if on_failure:
                on_failure(result.error.error_message)
            return False
        except Exception as e:
            logger.error("Auto-login raised", exc_info=True)
            if on_failure:
                on_failure(str(e))
            return False

    async def logout(self) -> None:
        """Drop the session, forget the user and the selected site."""
        self._session = None
        await self._repo.forget_users()
        await self._settings.clear_site_id()
        logger.info("Logged out")

    async def close(self) -> None:
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
