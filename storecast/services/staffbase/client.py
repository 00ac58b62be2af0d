"""
Staffbase REST API client.
Low-level authenticated access to the employee-communication platform:
JSON requests with fixed-delay retry on HTTP 429, multipart uploads and
offset pagination.
"""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import httpx

from storecast.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# Request timeouts and retry configuration
REQUEST_TIMEOUT = 30  # seconds
MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 2.0
RATE_LIMIT_STATUS = 429


class StaffbaseError(Exception):
    """Base exception for Staffbase API failures."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body or ""


class StaffbaseAPIError(StaffbaseError):
    """Non-2xx response other than a rate-limit rejection."""


class StaffbaseTimeoutError(StaffbaseError):
    """Rate-limit retries exhausted."""


class StaffbaseClient:
    """
    Authenticated JSON client for the Staffbase API.

    One instance is created at application startup and handed to every
    service that talks to the platform.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = REQUEST_TIMEOUT,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._token = token
        self._client = self._create_client(timeout, transport)

    def _create_client(
        self, timeout: float, transport: httpx.AsyncBaseTransport | None
    ) -> httpx.AsyncClient:
        """Create async HTTP client for the Staffbase API."""
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout), limits=limits, transport=transport
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _get_auth_headers(self, json_body: bool = True) -> dict:
        headers = {"Authorization": f"Basic {self._token}", "Accept": "application/json"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict | None = None,
    ) -> dict:
        """
        Perform an authenticated JSON request.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE)
            path: Path relative to the configured base URL
            json: Optional request body
            params: Optional query parameters

        Returns:
            dict: Parsed response body, ``{}`` for 204 No Content

        Raises:
            StaffbaseTimeoutError: If every attempt was rate limited
            StaffbaseAPIError: For any other non-2xx response
            StaffbaseError: For transport failures
        """
        url = f"{self.base_url}{path}"

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self._client.request(
                    method, url, headers=self._get_auth_headers(), json=json, params=params
                )
            except httpx.RequestError as e:
                logger.error("Staffbase request failed", method=method, path=path, error=str(e))
                raise StaffbaseError(f"API request failed: {e}") from e

            if response.status_code == RATE_LIMIT_STATUS:
                logger.debug(
                    "Staffbase rate limited, retrying",
                    method=method,
                    path=path,
                    attempt=attempt,
                    delay_seconds=self.retry_delay,
                )
                await asyncio.sleep(self.retry_delay)
                continue

            return self._handle_api_response(response, method, path)

        logger.warning("Staffbase retries exhausted", method=method, path=path, attempts=self.max_attempts)
        raise StaffbaseTimeoutError("API Timeout", status_code=RATE_LIMIT_STATUS)

    def _handle_api_response(self, response: httpx.Response, method: str, path: str) -> dict:
        """
        Handle and validate a Staffbase API response.

        Returns:
            dict: Parsed response data

        Raises:
            StaffbaseAPIError: If the response is not a success
        """
        if response.status_code == 204:
            return {}

        if not response.is_success:
            body = response.text or ""
            logger.error(
                "Staffbase API call failed",
                method=method,
                path=path,
                status_code=response.status_code,
                response_text=body[:200],
            )
            raise StaffbaseAPIError(
                f"API {response.status_code}: {body}",
                status_code=response.status_code,
                response_body=body,
            )

        if not response.text:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise StaffbaseAPIError(
                f"Invalid response format: {e}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

    async def upload(
        self, path: str, content: bytes, filename: str, content_type: str = "text/csv"
    ) -> dict:
        """
        Upload a file as multipart form data (field name ``file``).

        Returns:
            dict: Parsed response body, ``{"id": None}`` for 204 No Content
        """
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.post(
                url,
                headers=self._get_auth_headers(json_body=False),
                files={"file": (filename, content, content_type)},
            )
        except httpx.RequestError as e:
            logger.error("Staffbase upload failed", path=path, error=str(e))
            raise StaffbaseError(f"Upload failed: {e}") from e

        if response.status_code == 204:
            return {"id": None}

        if not response.is_success:
            body = response.text or ""
            raise StaffbaseAPIError(
                f"Upload Failed {response.status_code}: {body}",
                status_code=response.status_code,
                response_body=body,
            )

        return response.json() if response.text else {}

    async def iter_pages(
        self, path: str, page_size: int, params: dict | None = None
    ) -> AsyncIterator[list[dict]]:
        """
        Walk an offset-paginated collection one page at a time.

        Stops on an empty page or a page shorter than ``page_size``; the
        upstream ``total`` field is not reliable and is ignored.
        """
        offset = 0
        while True:
            query = dict(params or {})
            query.update({"limit": page_size, "offset": offset})
            result = await self.request("GET", path, params=query)
            rows = result.get("data") or []
            if not rows:
                return
            yield rows
            if len(rows) < page_size:
                return
            offset += page_size

    async def health_check(self) -> dict[str, Any]:
        """Probe the directory endpoint with a single-row request."""
        try:
            await self.request("GET", "/users", params={"limit": 1, "offset": 0})
            return {"healthy": True, "service": "staffbase", "base_url": self.base_url}
        except StaffbaseError as e:
            logger.error("Staffbase health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "staffbase",
                "status_code": e.status_code,
                "error": str(e),
            }
