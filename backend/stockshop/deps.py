import httpx
from fastapi import Depends, Request

from .config import Settings
from .freepik_client import FreepikClient
from .importer import ProductImporter
from .inventory import InventoryIndexBuilder, default_extractors
from .shopify_client import ShopifyClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http(request: Request) -> httpx.AsyncClient:
    return request.app.state.http


def get_freepik(
    settings: Settings = Depends(get_settings), http: httpx.AsyncClient = Depends(get_http)
) -> FreepikClient:
    return FreepikClient(http, settings.freepik_api_key)


def get_shopify(
    settings: Settings = Depends(get_settings), http: httpx.AsyncClient = Depends(get_http)
) -> ShopifyClient:
    return ShopifyClient(http, settings.shop_domain, settings.shopify_access_token, settings.shopify_api_version)


def get_index_builder(
    settings: Settings = Depends(get_settings), shopify: ShopifyClient = Depends(get_shopify)
) -> InventoryIndexBuilder:
    extractors = default_extractors(settings.metafield_namespace, settings.metafield_key)
    return InventoryIndexBuilder(shopify, extractors, max_pages=settings.index_max_pages)


def get_importer(
    settings: Settings = Depends(get_settings),
    shopify: ShopifyClient = Depends(get_shopify),
    index_builder: InventoryIndexBuilder = Depends(get_index_builder),
) -> ProductImporter:
    return ProductImporter(
        shopify,
        index_builder,
        metafield_namespace=settings.metafield_namespace,
        metafield_key=settings.metafield_key,
        precheck=settings.duplicate_precheck,
    )
