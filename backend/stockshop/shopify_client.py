import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .errors import UpstreamError, json_object

logger = logging.getLogger(__name__)

SERVICE = "Shopify"


class ShopifyClient:
    """
    Thin wrapper over the Admin REST API. Shares the application's HTTP client;
    every failure is raised as UpstreamError and never retried.
    """

    def __init__(self, http: httpx.AsyncClient, shop_domain: str, access_token: str, api_version: str):
        self.http = http
        self.shop_domain = shop_domain
        self.base_url = f"https://{shop_domain}/admin/api/{api_version}"
        self.headers = {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _request(self, method: str, url: str, **kwargs) -> Tuple[Dict[str, Any], httpx.Response]:
        try:
            resp = await self.http.request(method, url, headers=self.headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise UpstreamError(SERVICE, str(exc) or type(exc).__name__) from exc
        try:
            return json_object(SERVICE, resp), resp
        except UpstreamError as exc:
            logger.warning("%s %s returned %s: %s", method, url, resp.status_code, exc.detail)
            raise

    async def get_page(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, Any], Optional[str]]:
        """
        Fetch one listing page. Returns the decoded body and the URL of the next
        page from the `Link` header, or None on the last page. The next URL
        already carries its own query string, so params only apply to page one.
        """
        body, resp = await self._request("GET", self._url(path), params=params)
        next_url = resp.links.get("next", {}).get("url")
        return body, next_url

    async def get_product_metafields(self, product_id: Any) -> List[Dict[str, Any]]:
        body, resp = await self._request("GET", self._url(f"products/{product_id}/metafields.json"))
        metafields = body.get("metafields")
        if not isinstance(metafields, list):
            raise UpstreamError(SERVICE, resp.text, status_code=resp.status_code)
        return metafields

    async def create_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        body, _ = await self._request("POST", self._url("products.json"), json={"product": product})
        return body.get("product") or {}


async def exchange_oauth_code(
    http: httpx.AsyncClient, shop: str, client_id: str, client_secret: str, code: str
) -> str:
    """Trade an install `code` for an offline access token."""
    url = f"https://{shop}/admin/oauth/access_token"
    payload = {"client_id": client_id, "client_secret": client_secret, "code": code}
    try:
        resp = await http.post(url, json=payload)
    except httpx.HTTPError as exc:
        raise UpstreamError(SERVICE, str(exc) or type(exc).__name__) from exc
    token = json_object(SERVICE, resp).get("access_token")
    if not token:
        raise UpstreamError(SERVICE, "access_token missing from response", status_code=resp.status_code)
    return token
