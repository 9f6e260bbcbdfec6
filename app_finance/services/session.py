"""
Auth session manager.

Holds the logged-in user, keeps the API client's bearer token in step
with it and persists the session as a small JSON file so the next start
is already logged in.
"""

import json
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from app_finance.audit.logger import AuditLogger
from app_finance.models.finance import User, UserSession
from app_finance.services.api.auth import AuthAPI, AuthError, LoginResult
from app_finance.services.api.client import ApiClient


logger = structlog.get_logger(__name__)


class NotLoggedInError(Exception):
    """An operation needs a logged-in user."""
    pass


class SessionManager:
    """
    Current user session.

    Usage:
        manager = SessionManager(AuthAPI(client), client, settings.storage.session_file)
        manager.restore()
        if not manager.is_authenticated:
            result = await manager.login(email, password)
    """

    def __init__(
        self,
        auth_api: AuthAPI,
        client: ApiClient,
        session_path: Optional[Path] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._auth = auth_api
        self._client = client
        self._path = session_path
        self._audit = audit_logger or AuditLogger()
        self._session: Optional[UserSession] = None

    @property
    def session(self) -> Optional[UserSession]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def user_id(self) -> Optional[str]:
        return self._session.user.id if self._session else None

    @property
    def user(self) -> Optional[User]:
        return self._session.user if self._session else None

    def require_user_id(self) -> str:
        if self._session is None:
            raise NotLoggedInError("No user is logged in")
        return self._session.user.id

    # --- Persistence ----------------------------------------------------------

    def restore(self) -> bool:
        """
        Load a saved session, if any.

        A missing file means logged out. An unreadable one is discarded.
        """
        if self._path is None or not self._path.exists():
            return False
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            session = UserSession.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("session_restore_failed", path=str(self._path), error=str(e))
            self._forget()
            return False

        self._activate(session)
        logger.info("session_restored", user_id=session.user.id)
        return True

    def _persist(self, session: UserSession) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            session.model_dump_json(by_alias=True), encoding="utf-8"
        )

    def _forget(self) -> None:
        if self._path is not None and self._path.exists():
            self._path.unlink()

    def _activate(self, session: UserSession) -> None:
        self._session = session
        self._client.set_token(session.token)

    async def _complete_login(self, session: UserSession) -> None:
        self._activate(session)
        self._persist(session)
        await self._audit.log_user_logged_in(session.user.id)

    # --- Flows ----------------------------------------------------------------

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Log in. On success the session becomes current.

        Raises:
            AuthError: Mapped login failure (e.g. InvalidCredentialsError)
        """
        try:
            result = await self._auth.login(email, password)
        except AuthError as e:
            await self._audit.log_auth_failed("login", e.message)
            raise

        if result.session is not None:
            await self._complete_login(result.session)
        return result

    async def verify_email(self, user_id: str, code: str) -> UserSession:
        """Confirm the email code sent after register or an unverified login."""
        try:
            session = await self._auth.verify_email(user_id, code)
        except AuthError as e:
            await self._audit.log_auth_failed("verify_email", e.message)
            raise
        await self._complete_login(session)
        return session

    async def replace_session(self, session: UserSession) -> None:
        """Adopt a session issued by another flow (e.g. email change)."""
        self._activate(session)
        self._persist(session)

    async def update_user(self, user: User) -> None:
        """Keep the stored user in step after a profile edit."""
        if self._session is None:
            return
        await self.replace_session(UserSession(user=user, token=self._session.token))

    async def logout(self) -> None:
        user_id = self.user_id
        self._session = None
        self._client.set_token(None)
        self._forget()
        await self._audit.log_user_logged_out(user_id)
