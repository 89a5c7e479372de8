from __future__ import annotations

import base64
import logging
from urllib.parse import unquote_to_bytes

import httpx

from elementcapture.application.exceptions import ResourceFetchError
from elementcapture.application.ports.resource_fetcher import ResourceFetcherPort
from elementcapture.core.config import settings


class HttpxResourceFetcher(ResourceFetcherPort):
    """Fetches stylesheets and fonts over HTTP; `data:` URLs are decoded locally."""

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        user_agent: str = "elementcapture/1.0",
    ) -> None:
        self._timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT_SECONDS
        self._transport = transport
        self._headers = {"User-Agent": user_agent}
        self._logger = logging.getLogger(__name__)

    async def fetch_text(self, url: str) -> str:
        if url.startswith("data:"):
            return decode_data_url(url).decode("utf-8", errors="replace")
        response = await self._get(url)
        return response.text

    async def fetch_bytes(self, url: str) -> bytes:
        if url.startswith("data:"):
            return decode_data_url(url)
        response = await self._get(url)
        return response.content

    async def _get(self, url: str) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                headers=self._headers,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            raise ResourceFetchError(f"{url} returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ResourceFetchError(f"{url}: {e}") from e
        except (httpx.InvalidURL, ValueError) as e:
            raise ResourceFetchError(f"Invalid URL {url}: {e}") from e


def decode_data_url(url: str) -> bytes:
    header, sep, payload = url.partition(",")
    if not sep or not header.startswith("data:"):
        raise ResourceFetchError("Malformed data URL")
    try:
        if header.endswith(";base64"):
            return base64.b64decode(payload)
        return unquote_to_bytes(payload)
    except ValueError as e:
        raise ResourceFetchError(f"Malformed data URL: {e}") from e
