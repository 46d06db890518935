# filings.py
import logging
from typing import Sequence
from urllib.parse import urlsplit

import httpx

from .errors import InternalError, InvalidInput

logger = logging.getLogger(__name__)


class FilingsClient:
    """Fetches company filing documents for display.

    Only ``http(s)`` URLs on ``allowed_hosts`` (or their subdomains) are
    fetched. The market-data API key, when configured, is sent as ``apikey``.
    """

    def __init__(self, allowed_hosts: Sequence[str], api_key: str | None = None,
                 timeout: float = 10.0,
                 transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.allowed_hosts = tuple(h.lower() for h in allowed_hosts)
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _host_allowed(self, host: str) -> bool:
        return any(host == h or host.endswith("." + h) for h in self.allowed_hosts)

    async def fetch(self, url: str) -> str:
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not self._host_allowed((parts.hostname or "").lower()):
            raise InvalidInput("Unsupported filing URL")

        params = {"apikey": self.api_key} if self.api_key else None
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as http:
                res = await http.get(url, params=params)
            res.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("filing fetch failed for %s: %s", parts.hostname, e)
            raise InternalError("Failed to fetch filing") from e
        return res.text
