from __future__ import annotations

import json
from typing import Any

from subatomic.clients.base import BaseHTTPClient

CREDENTIALS_DOMAIN_PATH = "/credentials/store/system/domain/_"


class JenkinsClient(BaseHTTPClient):
    """Jenkins REST client authenticated with an OpenShift service account token.

    Credential endpoints answer form posts with a redirect, which is followed
    so callers see the status of the page Jenkins lands on.
    """

    def __init__(
        self,
        host: str,
        token: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        verify: bool = True,
    ) -> None:
        base_url = host if host.startswith("http") else f"https://{host}"
        super().__init__(
            base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            verify=verify,
        )
        self._token = token

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    async def create_credential(
        self,
        credential: dict[str, Any],
        file: tuple[str, bytes] | None = None,
    ) -> int:
        """Post a credential to the global domain and return the HTTP status.

        A freshly rolled out Jenkins answers 503 for a while, so the status is
        returned to the caller rather than raised. ``file`` is a
        ``(file_name, content)`` pair uploaded alongside file credentials.
        """
        form = {"json": json.dumps(credential)}
        if file is None:
            response = await self._send_once(
                "POST",
                f"{CREDENTIALS_DOMAIN_PATH}/createCredentials",
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded;charset=UTF-8"},
                follow_redirects=True,
            )
        else:
            file_name, content = file
            response = await self._send_once(
                "POST",
                f"{CREDENTIALS_DOMAIN_PATH}/createCredentials",
                data=form,
                files={"file": (file_name, content)},
                follow_redirects=True,
            )
        return response.status_code

    async def delete_credential(self, credential_id: str) -> int:
        response = await self._send_once(
            "POST",
            f"{CREDENTIALS_DOMAIN_PATH}/credential/{credential_id}/doDelete",
            follow_redirects=True,
        )
        return response.status_code
