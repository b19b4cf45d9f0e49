"""
API client module - Async HTTP client for the organize service.

Every call is authenticated with a bearer token except login and refresh.
httpx errors never leave this module: they are translated into the
auto_organizer.errors taxonomy.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as ModelValidationError

from auto_organizer.errors import ServiceError, TransportError, UnauthorizedError
from auto_organizer.models import (
    ActionLogEntry,
    AuthTokens,
    OrganizeResult,
    RecentAction,
    RulesResponse,
)

logger = logging.getLogger(__name__)


class OrganizeApiClient:
    """Thin async wrapper around the organize service endpoints."""

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize client.

        Args:
            api_url: Service base URL, without the /api suffix
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used to stub the service in tests)
        """
        self.base_url = f"{api_url.rstrip('/')}/api"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "OrganizeApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(
                method, path, headers=headers, json=payload, params=params
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise TransportError(f"Network error: {e}") from e

        if response.status_code == 401:
            raise UnauthorizedError("Session expired")
        if response.is_error:
            logger.error(f"{method} {path} returned {response.status_code}")
            raise ServiceError(response.status_code, response.text[:200] or None)
        return response

    @staticmethod
    def _parse(response: httpx.Response, model):
        try:
            return model.model_validate(response.json())
        except (ValueError, ModelValidationError) as e:
            raise ServiceError(response.status_code, f"Unexpected response: {e}") from e

    @staticmethod
    def _json_object(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ServiceError(response.status_code, "Unexpected response") from e
        if not isinstance(data, dict):
            raise ServiceError(response.status_code, "Unexpected response: expected a JSON object")
        return data

    async def analyze(self, token: str, payload: Dict[str, Any]) -> OrganizeResult:
        """
        Request a grouping of the given files.

        Raises:
            UnauthorizedError: On HTTP 401
            ServiceError: On any other non-success status
            TransportError: If the request could not complete
        """
        response = await self._request("POST", "/auto-organize/analyze", token, payload)
        return self._parse(response, OrganizeResult)

    async def extract_content(
        self, token: str, content_base64: str, extension: str, filename: str
    ) -> str:
        """Return a text preview for a file's leading bytes ("" if none)."""
        response = await self._request(
            "POST",
            "/auto-organize/extract-content",
            token,
            {"content_base64": content_base64, "extension": extension, "filename": filename},
        )
        data = self._json_object(response)
        preview = data.get("content_preview")
        return preview if isinstance(preview, str) else ""

    async def generate_rules(self, token: str, payload: Dict[str, Any]) -> RulesResponse:
        """Request sorting rules derived from an organize result."""
        response = await self._request("POST", "/auto-organize/generate-rules", token, payload)
        return self._parse(response, RulesResponse)

    async def log_action(self, token: str, entry: ActionLogEntry) -> None:
        """Record one completed move in the service history."""
        await self._request("POST", "/actions/log", token, entry.model_dump(mode='json'))

    async def recent_actions(self, token: str, page: int = 1, per_page: int = 5) -> List[RecentAction]:
        """
        Fetch the latest history entries.

        A non-success status yields an empty list rather than an error.
        """
        try:
            response = await self._request(
                "GET", "/history", token, params={"page": page, "per_page": per_page}
            )
        except ServiceError as e:
            logger.warning(f"History unavailable: {e}")
            return []
        actions = self._json_object(response).get("actions") or []
        if not isinstance(actions, list):
            raise ServiceError(response.status_code, "Unexpected response: actions is not a list")
        try:
            return [RecentAction.model_validate(item) for item in actions]
        except ModelValidationError as e:
            raise ServiceError(response.status_code, f"Unexpected response: {e}") from e

    async def login(self, email: str, password: str) -> AuthTokens:
        """Exchange credentials for tokens."""
        response = await self._request(
            "POST", "/auth/login", payload={"email": email, "password": password}
        )
        return self._parse(response, AuthTokens)

    async def refresh_token(self, refresh_token: str) -> AuthTokens:
        """Exchange a refresh token for a new access token."""
        response = await self._request(
            "POST", "/auth/refresh", payload={"refresh_token": refresh_token}
        )
        return self._parse(response, AuthTokens)
