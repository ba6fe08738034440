"""Async HTTP client for the profile API."""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class ProfileApiError(Exception):
    """A profile API call that did not succeed.

    status_code is None when the request never got a response.
    """

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None) -> None:
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


def _error_from_response(response: httpx.Response, fallback: str) -> ProfileApiError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or body.get("detail") or fallback
    return ProfileApiError(str(message), status_code=response.status_code, code=body.get("code"))


class ProfileApiClient:
    """Bearer-authenticated client for GET/PUT /api/v1/profile.

    Pass an existing httpx.AsyncClient to share a connection pool (or a
    mock transport in tests); otherwise one is created and closed by
    ``aclose``.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"}

    async def __aenter__(self) -> "ProfileApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    async def get_profile(self) -> dict[str, Any] | None:
        """Fetch the current user's profile.

        Returns:
            dict | None: The profile, or None when the user has none yet.

        Raises:
            ProfileApiError: For transport failures and any other non-200.
        """
        try:
            response = await self._client.get(self._url("/api/v1/profile"), headers=self._headers)
        except httpx.RequestError as e:
            logger.warning("Profile fetch failed: %s", e)
            raise ProfileApiError("Failed to fetch profile") from e

        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if response.status_code != httpx.codes.OK:
            raise _error_from_response(response, "Failed to fetch profile")
        return response.json()

    async def save_profile(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create or update the current user's profile.

        Returns:
            dict: The stored profile as returned by the server.

        Raises:
            ProfileApiError: With the server's message and code on rejection.
        """
        try:
            response = await self._client.put(
                self._url("/api/v1/profile"),
                headers=self._headers,
                json=payload,
            )
        except httpx.RequestError as e:
            logger.warning("Profile save failed: %s", e)
            raise ProfileApiError("Failed to update profile") from e

        if not response.is_success:
            raise _error_from_response(response, "Failed to update profile")
        return response.json()
