"""
HTTP Adapter

Architectural Intent:
- Fetches a managed node's landing page for the status-page check
- Uses stdlib urllib for the HTTP layer (no external dependencies)
- Blocking request runs in the default executor
"""

import asyncio
import logging
import urllib.error
import urllib.request

logger = logging.getLogger(__name__)


class HTTPAdapter:
    def __init__(self, timeout: int = 10) -> None:
        self.timeout = timeout

    def _get(self, url: str) -> str:
        request = urllib.request.Request(url, headers={"User-Agent": "webfleet"})
        with urllib.request.urlopen(request, timeout=self.timeout) as response:
            charset = response.headers.get_content_charset() or "utf-8"
            return response.read().decode(charset, errors="replace")

    async def fetch_page(self, address: str) -> str:
        """GET http://<address>/ and return the body.

        Raises:
            ConnectionError: the node did not answer or answered with an error.
        """
        url = f"http://{address}/"
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._get, url)
        except (urllib.error.URLError, OSError) as e:
            logger.debug("GET %s failed: %s", url, e)
            raise ConnectionError(f"GET {url} failed: {e}") from e
