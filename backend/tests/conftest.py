"""Shared fixtures: settings and an in-memory stand-in for both upstream APIs."""
import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from stockshop.config import Settings
from stockshop.main import create_app
from stockshop.shopify_client import ShopifyClient

SHOP = "demo.myshopify.com"
API_BASE = f"https://{SHOP}/admin/api/2023-10"


class FakeUpstream:
    """
    Routes httpx requests to canned Freepik and Shopify responses.

    `product_pages` is a list of listing pages; page N links to N+1 through
    the `Link` header. `metafields` maps a product id to its metafields.
    `fail_pages` maps a listing name to the page index that returns a 500.
    `replies` maps an endpoint name (search, products, metafields, create,
    token) to a fixed httpx.Response, for malformed upstream replies.
    """

    def __init__(self):
        self.search_payload = {"data": [], "meta": {"current_page": 1}}
        self.search_status = 200
        self.product_pages = [[]]
        self.metafields = {}
        self.endless = set()
        self.fail_pages = {}
        self.replies = {}
        self.create_status = 201
        self.create_error = {"errors": {"title": ["can't be blank"]}}
        self.token_status = 200
        self.created = []
        self.calls = []

    def listing_calls(self, name):
        return [c for c in self.calls if c[0] == "GET" and c[1].endswith(f"/{name}.json")]

    def _page(self, name, pages, request):
        index = int(request.url.params.get("page_info", 0))
        if self.fail_pages.get(name) == index:
            return httpx.Response(500, json={"errors": "Internal Server Error"})
        items = pages[index] if index < len(pages) else []
        headers = {}
        if name in self.endless or index + 1 < len(pages):
            headers["Link"] = f'<{API_BASE}/{name}.json?limit=250&page_info={index + 1}>; rel="next"'
        return httpx.Response(200, json={name: items}, headers=headers)

    def _route(self, request):
        host, path = request.url.host, request.url.path
        if host == "api.freepik.com" and path == "/v1/resources":
            return "search"
        if host == SHOP and path == "/admin/oauth/access_token":
            return "token"
        if host == SHOP and path.endswith("/products.json"):
            return "create" if request.method == "POST" else "products"
        if host == SHOP and path.endswith("/metafields.json") and "/products/" in path:
            return "metafields"
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path, dict(request.url.params)))
        route = self._route(request)
        if route in self.replies:
            return self.replies[route]
        if route == "search":
            if self.search_status != 200:
                return httpx.Response(self.search_status, json={"message": "Invalid API key"})
            return httpx.Response(200, json=self.search_payload)
        if route == "token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_request"})
            return httpx.Response(200, json={"access_token": "shpat_test", "scope": "read_products"})
        if route == "create":
            body = json.loads(request.content)
            if self.create_status >= 400:
                return httpx.Response(self.create_status, json=self.create_error)
            self.created.append(body["product"])
            return httpx.Response(201, json={"product": {"id": len(self.created), **body["product"]}})
        if route == "products":
            return self._page("products", self.product_pages, request)
        if route == "metafields":
            product_id = int(request.url.path.split("/")[-2])
            return httpx.Response(200, json={"metafields": self.metafields.get(product_id, [])})
        return httpx.Response(404, json={"errors": "Not Found"})


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def settings():
    return Settings(
        FREEPIK_API_KEY="fp-key",
        SHOPIFY_STORE="demo",
        SHOPIFY_ACCESS_TOKEN="shpat_admin",
        SHOPIFY_API_KEY="client-id",
        SHOPIFY_API_SECRET="shared-secret",
        REDIRECT_URI="https://app.example.com/api/auth/callback",
    )


@pytest.fixture
def client(settings, upstream):
    app = create_app(settings, transport=httpx.MockTransport(upstream.handler))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def run_shopify(upstream):
    """Run `fn(shopify_client)` against the fake store and return its result."""

    def run(fn):
        async def main():
            async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as http:
                return await fn(ShopifyClient(http, SHOP, "shpat_admin", "2023-10"))

        return asyncio.run(main())

    return run
