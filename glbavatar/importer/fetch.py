"""
Asynchronous retrieval of asset bytes from local paths and HTTP URLs.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from ..exceptions import AssetFetchError

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ('http', 'https')


def is_remote_url(url: str) -> bool:
    return urlparse(url).scheme.lower() in REMOTE_SCHEMES


def url_to_path(url: str) -> Path:
    """Local filesystem path for a plain path or ``file://`` URL."""
    parsed = urlparse(url)
    if parsed.scheme.lower() == 'file':
        return Path(url2pathname(parsed.path))
    return Path(url)


class AssetFetcher:
    """
    Fetches raw asset bytes.

    HTTP(S) URLs go through ``httpx``; everything else is treated as a
    local path and read in a worker thread so the event loop never blocks.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None,
                 timeout: Optional[float] = None):
        """
        Args:
            client: Shared client to reuse; a short-lived one is created per
                request when omitted
            timeout: Seconds before an HTTP request gives up (None waits forever)
        """
        self.client = client
        self.timeout = timeout

    async def fetch(self, url: str) -> bytes:
        """
        Fetch the content at ``url``.

        Raises:
            AssetFetchError: If the content cannot be retrieved
        """
        if is_remote_url(url):
            data = await self._fetch_remote(url)
        else:
            data = await self._read_local(url)
        logger.debug(f"Fetched {len(data)} bytes from {url}")
        return data

    async def _fetch_remote(self, url: str) -> bytes:
        try:
            if self.client is not None:
                response = await self.client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AssetFetchError(f"Failed to fetch {url}: {e}") from e
        return response.content

    async def _read_local(self, url: str) -> bytes:
        path = url_to_path(url)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise AssetFetchError(f"Failed to read {path}: {e}") from e
