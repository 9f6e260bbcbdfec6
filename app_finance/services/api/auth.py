"""
Auth endpoints and their error mapping.

The backend signals auth problems with plain status codes and free-text
messages. Each endpoint maps them to an AuthError subclass carrying the
pt-BR message shown to the user. Network errors pass through unchanged,
and so do 401s everywhere except login.
"""

from dataclasses import dataclass
from typing import Optional

from app_finance.models.api import (
    AuthResponse,
    ChangePasswordRequest,
    EmailCodeRequest,
    EmailRequest,
    LoginRawResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    RequestEmailChangeRequest,
    ResendCodeRequest,
    ResetPasswordRequest,
    SetNewEmailRequest,
    TokenCodeRequest,
    TokenResponse,
    UpdateProfileRequest,
    UpdateProfileResponse,
    VerifyEmailRequest,
    VerifyResetCodeResponse,
)
from app_finance.models.finance import User, UserSession
from app_finance.services.api.client import ApiClient, HTTPStatusError, UnauthorizedError


# =============================================================================
# ERRORS
# =============================================================================

class AuthError(Exception):
    """Base for auth failures. ``message`` is meant for the user."""

    message = "Erro desconhecido. Tente novamente."

    def __init__(self, message: Optional[str] = None):
        if message:
            self.message = message
        super().__init__(self.message)


class EmailAlreadyExistsError(AuthError):
    message = "Este email já está cadastrado"


class InvalidCredentialsError(AuthError):
    message = "Email ou senha incorretos"


class InvalidCodeError(AuthError):
    message = "Código inválido"


class CodeExpiredError(AuthError):
    message = "Código expirado. Solicite um novo código."


class EmailNotVerifiedError(AuthError):
    message = "Email não verificado"


class UserNotFoundError(AuthError):
    message = "Usuário não encontrado"


class UnknownAuthError(AuthError):
    pass


def _is_expired(message: str) -> bool:
    lowered = message.lower()
    return "expired" in lowered or "expirado" in lowered


def map_code_error(error: HTTPStatusError) -> AuthError:
    """Errors of endpoints that check a verification code."""
    if error.status_code == 400:
        if _is_expired(error.message):
            return CodeExpiredError()
        return InvalidCodeError()
    return UnknownAuthError()


def map_email_conflict(error: HTTPStatusError) -> AuthError:
    """Errors of endpoints that claim an email address."""
    if error.status_code == 409 or "already" in error.message.lower():
        return EmailAlreadyExistsError()
    return UnknownAuthError()


# =============================================================================
# LOGIN RESULT
# =============================================================================

@dataclass(frozen=True)
class LoginResult:
    """
    Outcome of a login attempt.

    Either a session (``session`` set) or a request to verify the email
    first (``requires_verification`` with the user id and email).
    """

    session: Optional[UserSession] = None
    requires_verification: bool = False
    user_id: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.session is not None

    @classmethod
    def success(cls, session: UserSession) -> "LoginResult":
        return cls(session=session)

    @classmethod
    def verification_required(cls, user_id: str, email: str) -> "LoginResult":
        return cls(requires_verification=True, user_id=user_id, email=email)


def _session(response: AuthResponse) -> UserSession:
    return UserSession(user=response.user, token=response.token)


# =============================================================================
# API
# =============================================================================

class AuthAPI:
    """Registration, login, verification, password and email flows."""

    def __init__(self, client: ApiClient):
        self._client = client

    async def register(self, name: str, email: str, password: str) -> RegisterResponse:
        try:
            return await self._client.request_model(
                RegisterResponse, "POST", "/auth/register",
                RegisterRequest(name=name, email=email, password=password),
            )
        except HTTPStatusError as e:
            raise map_email_conflict(e) from e

    async def login(self, email: str, password: str) -> LoginResult:
        try:
            raw = await self._client.request_model(
                LoginRawResponse, "POST", "/auth/login",
                LoginRequest(email=email, password=password),
            )
        except UnauthorizedError as e:
            # the client reports every 401 this way; on login it means bad credentials
            raise InvalidCredentialsError() from e
        except HTTPStatusError as e:
            raise UnknownAuthError() from e

        if raw.requires_verification and raw.user_id and raw.email:
            return LoginResult.verification_required(raw.user_id, raw.email)
        if raw.token is None or raw.user is None:
            raise UnknownAuthError()
        return LoginResult.success(UserSession(user=raw.user, token=raw.token))

    async def verify_email(self, user_id: str, code: str) -> UserSession:
        try:
            response = await self._client.request_model(
                AuthResponse, "POST", "/auth/verify-email",
                VerifyEmailRequest(user_id=user_id, code=code),
            )
        except HTTPStatusError as e:
            raise map_code_error(e) from e
        return _session(response)

    async def resend_verification_code(self, user_id: str) -> MessageResponse:
        return await self._client.request_model(
            MessageResponse, "POST", "/auth/resend-code",
            ResendCodeRequest(user_id=user_id),
        )

    # --- Password reset -------------------------------------------------------

    async def forgot_password(self, email: str) -> MessageResponse:
        try:
            return await self._client.request_model(
                MessageResponse, "POST", "/auth/forgot-password",
                EmailRequest(email=email),
            )
        except HTTPStatusError as e:
            if e.status_code == 404:
                raise UserNotFoundError() from e
            raise UnknownAuthError() from e

    async def verify_reset_code(self, email: str, code: str) -> str:
        """Returns the reset token to pass to ``reset_password``."""
        try:
            response = await self._client.request_model(
                VerifyResetCodeResponse, "POST", "/auth/verify-reset-code",
                EmailCodeRequest(email=email, code=code),
            )
        except HTTPStatusError as e:
            raise map_code_error(e) from e
        return response.reset_token

    async def reset_password(self, email: str, token: str, new_password: str) -> MessageResponse:
        try:
            return await self._client.request_model(
                MessageResponse, "POST", "/auth/reset-password",
                ResetPasswordRequest(email=email, token=token, new_password=new_password),
            )
        except HTTPStatusError as e:
            if e.status_code == 400:
                raise InvalidCodeError() from e
            raise UnknownAuthError() from e

    # --- Profile --------------------------------------------------------------

    async def get_profile(self) -> User:
        return await self._client.request_model(User, "GET", "/auth/profile")

    async def update_profile(self, name: str, last_name: str) -> User:
        response = await self._client.request_model(
            UpdateProfileResponse, "PATCH", "/auth/profile",
            UpdateProfileRequest(name=name, last_name=last_name),
        )
        return response.user

    # --- Change password (code sent by email) ---------------------------------

    async def request_password_change(self, email: str) -> MessageResponse:
        return await self._client.request_model(
            MessageResponse, "POST", "/auth/change-password/request",
            EmailRequest(email=email),
        )

    async def verify_password_change_code(self, email: str, code: str) -> str:
        try:
            response = await self._client.request_model(
                TokenResponse, "POST", "/auth/change-password/verify",
                EmailCodeRequest(email=email, code=code),
            )
        except HTTPStatusError as e:
            raise map_code_error(e) from e
        return response.token

    async def change_password(self, token: str, new_password: str) -> MessageResponse:
        return await self._client.request_model(
            MessageResponse, "POST", "/auth/change-password/confirm",
            ChangePasswordRequest(token=token, new_password=new_password),
        )

    # --- Change email (current address, then new address) ---------------------

    async def request_email_change(self, current_email: str) -> MessageResponse:
        return await self._client.request_model(
            MessageResponse, "POST", "/auth/change-email/request",
            RequestEmailChangeRequest(current_email=current_email),
        )

    async def verify_current_email_code(self, email: str, code: str) -> str:
        try:
            response = await self._client.request_model(
                TokenResponse, "POST", "/auth/change-email/verify-current",
                EmailCodeRequest(email=email, code=code),
            )
        except HTTPStatusError as e:
            raise map_code_error(e) from e
        return response.token

    async def set_new_email(self, token: str, new_email: str) -> str:
        try:
            response = await self._client.request_model(
                TokenResponse, "POST", "/auth/change-email/set-new",
                SetNewEmailRequest(token=token, new_email=new_email),
            )
        except HTTPStatusError as e:
            raise map_email_conflict(e) from e
        return response.token

    async def verify_new_email_code(self, token: str, code: str) -> UserSession:
        """Completes the change; the backend issues a new session token."""
        try:
            response = await self._client.request_model(
                AuthResponse, "POST", "/auth/change-email/verify-new",
                TokenCodeRequest(token=token, code=code),
            )
        except HTTPStatusError as e:
            raise map_code_error(e) from e
        return _session(response)
