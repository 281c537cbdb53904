from __future__ import annotations

from typing import Any

from subatomic.clients.base import BaseHTTPClient
from subatomic.core.errors import TransportError


class SlackClient(BaseHTTPClient):
    """Slack Web API client with retry logic and circuit breaker."""

    def __init__(
        self,
        token: str | None,
        *,
        base_url: str = "https://slack.com/api",
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
    ) -> None:
        super().__init__(
            base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
        )
        self._token = token

    @property
    def enabled(self) -> bool:
        return bool(self._token)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json; charset=utf-8"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def post_message(self, channel: str, text: str, **blocks: Any) -> dict[str, Any]:
        payload = {"channel": channel, "text": text} | blocks
        return self._checked(await self.post("/chat.postMessage", json=payload), "chat.postMessage")

    async def update_message(self, channel: str, ts: str, text: str, **blocks: Any) -> dict[str, Any]:
        payload = {"channel": channel, "ts": ts, "text": text} | blocks
        return self._checked(await self.post("/chat.update", json=payload), "chat.update")

    @staticmethod
    def _checked(response: dict[str, Any], method: str) -> dict[str, Any]:
        # Slack reports API failures with HTTP 200 and ok=false
        if not response.get("ok", False):
            raise TransportError(
                f"Slack {method} failed: {response.get('error', 'unknown_error')}",
                {"method": method},
            )
        return response
