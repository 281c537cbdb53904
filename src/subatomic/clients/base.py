from __future__ import annotations

from typing import Any

import httpx
import structlog
from circuitbreaker import CircuitBreakerError, circuit
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from subatomic.core.errors import (
    PermanentHTTPError,
    ResourceConflict,
    ResourceNotFound,
    TransportError,
)

logger = structlog.get_logger()


class RetryableHTTPError(TransportError):
    """HTTP errors that should be retried."""


def is_retryable_status(status_code: int) -> bool:
    """Determine if HTTP status code is retryable."""
    return status_code in (408, 429, 500, 502, 503, 504)


def is_success_code(status_code: int) -> bool:
    return 200 <= status_code < 300


def permanent_error_for(response: httpx.Response, method: str, url: str) -> PermanentHTTPError:
    """Map a non-retryable response onto the error taxonomy."""
    message = f"HTTP {response.status_code} on {method} {url}"
    details = {"status": response.status_code, "url": url}
    if response.status_code == 404:
        return ResourceNotFound(message, response.status_code, details)
    if response.status_code == 409:
        return ResourceConflict(message, response.status_code, details)
    return PermanentHTTPError(message, response.status_code, details)


def _circuit_open(method: str, path: str) -> TransportError:
    logger.error("http_circuit_open", method=method, path=path)
    return TransportError(f"Circuit open, not sending {method} {path}", {"path": path})


class BaseHTTPClient:
    """Base HTTP client with retry logic and circuit breaker."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        verify: bool = True,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff_factor = backoff_factor
        self._verify = verify

    def _headers(self) -> dict[str, str]:
        """Override to provide custom headers."""
        return {"Content-Type": "application/json"}

    @circuit(
        failure_threshold=5,
        recovery_timeout=60,
        expected_exception=RetryableHTTPError,
    )
    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        raise_retryable: bool = True,
        follow_redirects: bool = False,
    ) -> httpx.Response:
        """Perform one HTTP exchange; network failures always raise."""
        url = f"{self._base_url}{path}"
        req_headers = self._headers()
        if headers:
            req_headers.update(headers)

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                verify=self._verify,
                follow_redirects=follow_redirects,
            ) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    data=data,
                    files=files,
                    headers=req_headers,
                )
        except (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError) as exc:
            logger.warning("http_network_error", method=method, url=url, error=str(exc))
            raise RetryableHTTPError(str(exc), {"url": url}) from exc

        if raise_retryable and is_retryable_status(response.status_code):
            logger.warning(
                "http_retryable_error",
                status=response.status_code,
                method=method,
                url=url,
            )
            raise RetryableHTTPError(
                f"HTTP {response.status_code}: {response.text}",
                {"status": response.status_code, "url": url},
            )
        return response

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Execute HTTP request with retry and circuit breaker, returning JSON."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RetryableHTTPError),
            stop=stop_after_attempt(max(self._max_retries, 1)),
            wait=wait_exponential(multiplier=self._backoff_factor, min=0, max=30),
            reraise=True,
        )
        try:
            response = await retrying(
                self._send,
                method,
                path,
                params=params,
                json=json,
                data=data,
                headers=headers,
            )
        except CircuitBreakerError as exc:
            raise _circuit_open(method, path) from exc

        if response.status_code >= 400:
            error = permanent_error_for(response, method, str(response.request.url))
            log = logger.debug if error.status_code in (404, 409) else logger.error
            log(
                "http_permanent_error",
                status=response.status_code,
                method=method,
                url=str(response.request.url),
            )
            raise error

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    async def _send_once(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """One exchange without retries; callers inspect the status themselves."""
        try:
            return await self._send(method, path, raise_retryable=False, **kwargs)
        except CircuitBreakerError as exc:
            raise _circuit_open(method, path) from exc

    async def get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Execute GET request."""
        return await self._request("GET", path, params=params, headers=headers)

    async def post(
        self,
        path: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Execute POST request."""
        return await self._request("POST", path, json=json, headers=headers)

    async def put(
        self,
        path: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Execute PUT request."""
        return await self._request("PUT", path, json=json, headers=headers)

    async def patch(
        self,
        path: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Execute PATCH request."""
        return await self._request("PATCH", path, json=json, headers=headers)
