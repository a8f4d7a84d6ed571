"""
Existing-inventory index and duplicate classification.

The index is the set of fingerprints already present in the store. It is
rebuilt for every request that needs it: nothing is cached between requests,
so concurrent requests never share state (and never share work either).

The product listing is read at most `max_pages` pages deep. That caps the
cost of a build at the price of completeness: stores with more than
`max_pages * PAGE_SIZE` products are only partially indexed, and images
beyond that window are reported as non-duplicates.

Metafields are per product on the Admin REST API, so they are read with one
extra call for each listed product carrying the imported tag.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from .errors import UpstreamError
from .fingerprint import fingerprint, is_fingerprint
from .models import ClassifiedImage, ImageResult
from .shopify_client import SERVICE, ShopifyClient

logger = logging.getLogger(__name__)

PAGE_SIZE = 250
IMPORTED_TAG = "freepik-imported"
# Raw image URL metafield written by earlier releases, and still written on import.
SOURCE_URL_NAMESPACE = "custom"
SOURCE_URL_KEY = "freepik.image_url"


def product_tags(product: Dict[str, Any]) -> List[str]:
    tags = product.get("tags") or ""
    if isinstance(tags, str):
        tags = tags.split(",")
    return [str(tag).strip() for tag in tags if str(tag).strip()]


class FingerprintExtractor:
    """Rule for pulling fingerprints out of one listed product."""

    name = "base"
    needs_metafields = False

    def extract(self, product: Dict[str, Any], metafields: List[Dict[str, Any]]) -> Iterable[str]:
        raise NotImplementedError


class MetafieldExtractor(FingerprintExtractor):
    """
    Metafield `namespace.key` on the product. A value carrying the marker is
    taken verbatim; anything else is a raw image URL and gets fingerprinted.
    """

    name = "metafield"
    needs_metafields = True

    def __init__(self, namespace: str, key: str):
        self.namespace = namespace
        self.key = key
        self.name = f"metafield {namespace}.{key}"

    def extract(self, product: Dict[str, Any], metafields: List[Dict[str, Any]]) -> Iterable[str]:
        for mf in metafields:
            if not isinstance(mf, dict) or mf.get("namespace") != self.namespace or mf.get("key") != self.key:
                continue
            value = mf.get("value")
            if not isinstance(value, str) or not value.strip():
                continue
            value = value.strip()
            yield value if is_fingerprint(value) else fingerprint(value)


class TagPrefixExtractor(FingerprintExtractor):
    """Back-compat source: products tagged `fpimg-<digest>`."""

    name = "tag"

    def extract(self, product: Dict[str, Any], metafields: List[Dict[str, Any]]) -> Iterable[str]:
        return [tag for tag in product_tags(product) if is_fingerprint(tag)]


def default_extractors(namespace: str, key: str) -> List[FingerprintExtractor]:
    """Canonical fingerprint metafield, then the raw URL metafield, then tags."""
    return [
        MetafieldExtractor(namespace, key),
        MetafieldExtractor(SOURCE_URL_NAMESPACE, SOURCE_URL_KEY),
        TagPrefixExtractor(),
    ]


class InventoryIndexBuilder:
    def __init__(
        self,
        shopify: ShopifyClient,
        extractors: List[FingerprintExtractor],
        max_pages: int = 5,
    ):
        self.shopify = shopify
        self.extractors = extractors
        # Ceiling on product listing pages per build. Per-product metafield
        # reads are not listing pages and are not counted against it.
        self.max_pages = max_pages

    async def _metafields(self, product: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not any(e.needs_metafields for e in self.extractors):
            return []
        if IMPORTED_TAG not in product_tags(product) or product.get("id") is None:
            return []
        return await self.shopify.get_product_metafields(product["id"])

    async def build(self) -> Set[str]:
        """
        Walk the product listing, applying every extractor in priority order
        to each product. Any failed call raises UpstreamError and the partial
        set is discarded.
        """
        index: Set[str] = set()
        next_url: Optional[str] = "products.json"
        params: Optional[Dict[str, Any]] = {"limit": PAGE_SIZE, "fields": "id,tags"}
        pages = 0
        while next_url and pages < self.max_pages:
            page, next_url = await self.shopify.get_page(next_url, params=params)
            params = None
            pages += 1
            products = page.get("products")
            if not isinstance(products, list):
                raise UpstreamError(SERVICE, f"unexpected product listing: {page!r}")
            for product in products:
                if not isinstance(product, dict):
                    continue
                metafields = await self._metafields(product)
                for extractor in self.extractors:
                    index.update(extractor.extract(product, metafields))
        if next_url:
            logger.warning(
                "Index build stopped at the %d page ceiling; older products were not scanned", self.max_pages
            )
        logger.info("Indexed %d fingerprints from %d product page(s)", len(index), pages)
        return index


def parse_search_results(payload: Dict[str, Any]) -> List[ImageResult]:
    """Pull title and source URL out of provider items, tolerating malformed ones."""
    results = []
    items = payload.get("data")
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict):
            results.append(ImageResult())
            continue
        image = item.get("image") if isinstance(item.get("image"), dict) else {}
        source = image.get("source") if isinstance(image.get("source"), dict) else {}
        url = source.get("url")
        results.append(ImageResult(title=item.get("title"), source_url=url if isinstance(url, str) else None))
    return results


def classify(results: List[ImageResult], index: Set[str]) -> List[ClassifiedImage]:
    classified = []
    for result in results:
        if not result.source_url:
            classified.append(ClassifiedImage(title=result.title, source_url=result.source_url))
            continue
        fp = fingerprint(result.source_url)
        classified.append(
            ClassifiedImage(title=result.title, source_url=result.source_url, fingerprint=fp, duplicate=fp in index)
        )
    return classified
