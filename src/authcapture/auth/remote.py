"""HTTP reload sink -- ask a running server to re-read the credential store."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from authcapture.auth.base import ReloadSink
from authcapture.exceptions import ReloadError

logger = logging.getLogger(__name__)


class HttpReloadSink(ReloadSink):
    """POST to a server endpoint that reloads its auth sources.

    Args:
        url: The reload endpoint (e.g. ``http://127.0.0.1:7860/api/auth/reload``).
        timeout: Request timeout in seconds.
        headers: Extra request headers, such as an API key.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._headers = headers or {}

    @property
    def url(self) -> str:
        return self._url

    def reload(self) -> None:
        """Send the reload request.

        Raises:
            ReloadError: On connection failures or a non-2xx response.
        """
        try:
            response = httpx.post(
                self._url,
                headers={"Accept": "application/json", **self._headers},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ReloadError(
                f"Reload request failed with status {exc.response.status_code}: "
                f"{exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ReloadError(f"Reload request failed: {exc}") from exc
        logger.info("Reload requested at %s", self._url)
