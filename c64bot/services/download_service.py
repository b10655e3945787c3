"""Download service for fetching attachments into scratch storage."""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from c64bot.errors import DownloadError

logger = logging.getLogger(__name__)


def make_http_client(
    *,
    timeout_seconds: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds, connect=5.0),
        follow_redirects=True,
        headers={"User-Agent": "c64bot/1.0"},
        transport=transport,
    )


class DownloadService:
    """Streams remote files to local paths.

    A partially written file is always removed when the transfer fails.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def download(self, url: str, destination: Path) -> int:
        """Download ``url`` to ``destination``.

        Args:
            url: Source URL.
            destination: Local file to create.

        Returns:
            Number of bytes written.

        Raises:
            DownloadError: On a non-success status or any transport failure.
        """
        written = 0
        try:
            async with make_http_client(
                timeout_seconds=self._timeout_seconds, transport=self._transport
            ) as client:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise DownloadError(
                            f"Failed to download file: {response.status_code}",
                            status_code=response.status_code,
                        )
                    with destination.open("wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)
                            written += len(chunk)
        except DownloadError:
            destination.unlink(missing_ok=True)
            raise
        except httpx.HTTPError as e:
            destination.unlink(missing_ok=True)
            raise DownloadError(f"Failed to download file: {type(e).__name__}") from e
        except OSError as e:
            destination.unlink(missing_ok=True)
            raise DownloadError(f"Failed to write downloaded file: {e.strerror or e}") from e

        logger.debug("Downloaded %d bytes to %s", written, destination)
        return written
