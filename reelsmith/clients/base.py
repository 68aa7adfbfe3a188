"""Shared async HTTP plumbing for the external API clients."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_MAX_RETRIES = 5
_DEFAULT_TIMEOUT = 60.0
_DOWNLOAD_TIMEOUT = 300.0


class ApiError(Exception):
    """Raised when an external API returns an error."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class AsyncApiClient:
    """Base for httpx-backed API clients.

    Subclasses pass their base URL and auth headers; requests are retried on
    429, 5xx and timeouts with exponential backoff.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str],
        timeout: float = _DEFAULT_TIMEOUT,
        max_retries: int = _MAX_RETRIES,
        backoff_base: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._transport = transport
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _backoff(self, attempt: int) -> float:
        return self.backoff_base * (2 ** attempt)

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute an HTTP request with retry logic for 429 and 5xx errors."""
        last_exc: Exception | None = None
        for attempt in range(self.max_retries):
            try:
                response = await self._client.request(method, url, **kwargs)

                if response.status_code == 429:
                    retry_after = float(
                        response.headers.get("Retry-After", self._backoff(attempt))
                    )
                    logger.warning(
                        "Rate limited (429). Retrying in %.1fs (attempt %d/%d)",
                        retry_after, attempt + 1, self.max_retries,
                    )
                    await asyncio.sleep(retry_after)
                    continue

                if response.status_code >= 500:
                    wait = self._backoff(attempt)
                    logger.warning(
                        "Server error %d. Retrying in %.1fs (attempt %d/%d)",
                        response.status_code, wait, attempt + 1, self.max_retries,
                    )
                    await asyncio.sleep(wait)
                    continue

                response.raise_for_status()
                return response

            except httpx.TimeoutException as exc:
                last_exc = exc
                wait = self._backoff(attempt)
                logger.warning(
                    "Request timeout. Retrying in %.1fs (attempt %d/%d)",
                    wait, attempt + 1, self.max_retries,
                )
                await asyncio.sleep(wait)
            except httpx.HTTPStatusError as exc:
                raise ApiError(
                    f"HTTP {exc.response.status_code}: {exc.response.text}",
                    status_code=exc.response.status_code,
                    body=exc.response.text,
                ) from exc

        raise ApiError(f"Max retries ({self.max_retries}) exceeded for {method} {url}") from last_exc

    async def download_file(self, url: str, output_path: str | Path) -> Path:
        """Stream a file from an absolute URL to a local path."""
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)

        logger.info("Downloading %s -> %s", url, output)
        try:
            async with httpx.AsyncClient(
                timeout=_DOWNLOAD_TIMEOUT,
                follow_redirects=True,
                transport=self._transport,
            ) as dl_client:
                async with dl_client.stream("GET", url) as response:
                    response.raise_for_status()
                    with open(output, "wb") as f:
                        async for chunk in response.aiter_bytes(chunk_size=8192):
                            f.write(chunk)
        except httpx.HTTPError as exc:
            output.unlink(missing_ok=True)
            raise ApiError(f"Download failed for {url}: {exc}") from exc

        logger.info("Downloaded: %s (%.1f KB)", output, output.stat().st_size / 1024)
        return output
