import logging
from typing import Any, Dict

import httpx

from .errors import UpstreamError, json_object

logger = logging.getLogger(__name__)

SERVICE = "Freepik"
BASE_URL = "https://api.freepik.com/v1"
PAGE_SIZE = 60


class FreepikClient:
    def __init__(self, http: httpx.AsyncClient, api_key: str, base_url: str = BASE_URL):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.headers = {"x-freepik-api-key": api_key, "Accept": "application/json"}

    async def search(self, term: str, page: int = 1) -> Dict[str, Any]:
        params = {"order": "relevance", "limit": PAGE_SIZE, "page": page, "term": term}
        try:
            resp = await self.http.get(f"{self.base_url}/resources", params=params, headers=self.headers)
        except httpx.HTTPError as exc:
            logger.warning("Freepik search %r page %s failed: %s", term, page, exc)
            raise UpstreamError(SERVICE, str(exc) or type(exc).__name__) from exc
        return json_object(SERVICE, resp)
