"""
REST Client for the Finance Backend

A thin layer over httpx: builds requests, attaches the bearer token and
maps failures to a small exception hierarchy. It knows nothing about
entities; the resource APIs on top of it do.

DESIGN DECISION: Only transport failures (connection refused, timeouts)
are retried. An HTTP error status is an answer from the server and is
raised immediately.
"""

import json
from typing import Any, Optional, TypeVar, Union

import httpx
import structlog
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from app_finance.config import ApiSettings, get_settings
from app_finance.models.api import ApiModel


M = TypeVar("M", bound=BaseModel)

logger = structlog.get_logger(__name__)


class APIError(Exception):
    """Base exception for backend calls."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthorizedError(APIError):
    """The token is missing, invalid or expired (HTTP 401)."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class HTTPStatusError(APIError):
    """The server answered with a non-2xx status other than 401."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        return f"HTTP {self.status_code}: {self.message}"


class NetworkError(APIError):
    """The request never got an answer."""
    pass


class DecodingError(APIError):
    """The answer was not the JSON we expected."""
    pass


Body = Union[ApiModel, dict, None]


class ApiClient:
    """
    Async JSON client for the finance backend.

    Usage:
        async with ApiClient() as client:
            client.set_token(session.token)
            data = await client.request("GET", "/categories")
    """

    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: API settings. Uses global settings if not provided.
            transport: httpx transport override (tests pass a MockTransport).
            retry_wait: Wait strategy between transport retries.
        """
        self._settings = settings or get_settings().api
        self._token: Optional[str] = None
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)
        self._client = httpx.AsyncClient(
            base_url=self._settings.base_url,
            timeout=self._settings.timeout_seconds,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    def _headers(self) -> dict[str, str]:
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return {}

    @staticmethod
    def _encode(body: Body, exclude_none: bool) -> Optional[dict]:
        if body is None:
            return None
        if isinstance(body, ApiModel):
            return body.to_payload(exclude_none=exclude_none)
        return body

    async def _send(
        self,
        method: str,
        endpoint: str,
        body: Body = None,
        params: Optional[dict[str, Any]] = None,
        exclude_none: bool = False,
    ) -> httpx.Response:
        payload = self._encode(body, exclude_none)
        logger.debug("api_request", method=method, endpoint=endpoint)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._settings.max_retries),
                wait=self._retry_wait,
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.request(
                        method,
                        endpoint,
                        json=payload,
                        params=params,
                        headers=self._headers(),
                    )
        except httpx.TransportError as e:
            logger.warning("api_network_error", method=method, endpoint=endpoint, error=str(e))
            raise NetworkError(f"Could not reach the server: {e}") from e

        logger.debug("api_response", endpoint=endpoint, status=response.status_code)

        if response.status_code == 401:
            raise UnauthorizedError()
        if not response.is_success:
            message = response.text or "Unknown error"
            logger.warning(
                "api_http_error",
                method=method,
                endpoint=endpoint,
                status=response.status_code,
                message=message[:200],
            )
            raise HTTPStatusError(response.status_code, message)
        return response

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Body = None,
        params: Optional[dict[str, Any]] = None,
        exclude_none: bool = False,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            UnauthorizedError: On HTTP 401
            HTTPStatusError: On any other non-2xx status
            NetworkError: When the server could not be reached
            DecodingError: When the body is not JSON
        """
        response = await self._send(method, endpoint, body, params, exclude_none)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodingError(f"Invalid JSON from {endpoint}: {e}") from e

    async def request_model(
        self,
        model: type[M],
        method: str,
        endpoint: str,
        body: Body = None,
        params: Optional[dict[str, Any]] = None,
        exclude_none: bool = False,
    ) -> M:
        """Like ``request`` but validates the body into ``model``."""
        data = await self.request(method, endpoint, body, params, exclude_none)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise DecodingError(f"Unexpected response from {endpoint}: {e}") from e

    async def request_list(
        self,
        model: type[M],
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
    ) -> list[M]:
        """GET a JSON array of ``model``."""
        data = await self.request("GET", endpoint, params=params)
        if not isinstance(data, list):
            raise DecodingError(f"Expected a list from {endpoint}")
        try:
            return [model.model_validate(item) for item in data]
        except ValidationError as e:
            raise DecodingError(f"Unexpected response from {endpoint}: {e}") from e

    async def request_void(
        self,
        method: str,
        endpoint: str,
        body: Body = None,
    ) -> None:
        """Send a request whose body (if any) is ignored, e.g. DELETE."""
        await self._send(method, endpoint, body)
