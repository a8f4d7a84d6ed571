"""
Creates store products from chosen stock images.

Duplicate safety: with `precheck` on, every import rebuilds the inventory
index and refuses images whose fingerprint is already present. That keeps
the catalog duplicate-free as long as imports are serialized and the store
fits inside the index page ceiling. Two concurrent imports of the same image
can both pass the check; the Admin API has no idempotency key to close that
gap. With `precheck` off, duplicates are only flagged at search time.
"""
import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from .errors import UpstreamError
from .fingerprint import fingerprint
from .inventory import IMPORTED_TAG, SOURCE_URL_KEY, SOURCE_URL_NAMESPACE, InventoryIndexBuilder
from .models import BulkImportResult, ImportRequest, ImportResult
from .shopify_client import ShopifyClient

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Design"

# tier key -> (base price, largest-size price)
PRICING_TIERS: Dict[str, Tuple[int, int]] = {
    "399-499": (399, 499),
    "499-599": (499, 599),
    "599-699": (599, 699),
}
DEFAULT_TIER = "399-499"
SIZES = ["XS", "S", "M", "L", "XL", "XXL", "3XL"]
DEFAULT_STOCK = 100


def normalize_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        return DEFAULT_TITLE
    return title.strip()


def resolve_tier(tier: Optional[str]) -> str:
    key = (tier or "").strip()
    return key if key in PRICING_TIERS else DEFAULT_TIER


def build_variants(tier: str) -> List[Dict[str, Any]]:
    base, large = PRICING_TIERS[tier]
    largest = SIZES[-1]
    return [
        {
            "option1": size,
            "price": f"{large if size == largest else base:.2f}",
            "inventory_management": "shopify",
            "inventory_quantity": DEFAULT_STOCK,
        }
        for size in SIZES
    ]


class ProductImporter:
    def __init__(
        self,
        shopify: ShopifyClient,
        index_builder: InventoryIndexBuilder,
        metafield_namespace: str = "custom",
        metafield_key: str = "image_fingerprint",
        precheck: bool = True,
    ):
        self.shopify = shopify
        self.index_builder = index_builder
        self.metafield_namespace = metafield_namespace
        self.metafield_key = metafield_key
        self.precheck = precheck

    def build_product(self, req: ImportRequest) -> Dict[str, Any]:
        title = normalize_title(req.title)
        fp = fingerprint(req.source_url)
        tags = [IMPORTED_TAG, fp]
        product: Dict[str, Any] = {
            "title": title,
            "status": "active",
            "images": [{"src": req.source_url}],
            "metafields": [
                {
                    "namespace": self.metafield_namespace,
                    "key": self.metafield_key,
                    "type": "single_line_text_field",
                    "value": fp,
                },
                {
                    "namespace": SOURCE_URL_NAMESPACE,
                    "key": SOURCE_URL_KEY,
                    "type": "single_line_text_field",
                    "value": req.source_url,
                },
            ],
        }
        if req.pricing_tier is not None:
            tier = resolve_tier(req.pricing_tier)
            tags.append(f"tier-{tier}")
            product["options"] = [{"name": "Size", "values": list(SIZES)}]
            product["variants"] = build_variants(tier)
        product["tags"] = ", ".join(tags)
        return product

    async def _create(self, req: ImportRequest, index: Optional[Set[str]]) -> ImportResult:
        fp = fingerprint(req.source_url)
        title = normalize_title(req.title)
        if index is not None and fp in index:
            logger.info("Skipping %s: %s already imported", req.source_url, fp)
            return ImportResult(
                status="duplicate",
                message="Image already imported",
                title=title,
                source_url=req.source_url,
                fingerprint=fp,
            )
        try:
            created = await self.shopify.create_product(self.build_product(req))
        except UpstreamError as exc:
            return ImportResult(
                status="error",
                message="Failed to add product",
                title=title,
                source_url=req.source_url,
                fingerprint=fp,
                detail=exc.detail,
            )
        logger.info("Created product %s for %s", created.get("id"), fp)
        return ImportResult(
            status="added",
            message="Product added to Shopify",
            title=title,
            source_url=req.source_url,
            fingerprint=fp,
        )

    async def _load_index(self) -> Optional[Set[str]]:
        return await self.index_builder.build() if self.precheck else None

    async def import_product(self, req: ImportRequest) -> ImportResult:
        try:
            index = await self._load_index()
        except UpstreamError as exc:
            return ImportResult(
                status="error",
                message="Could not check existing products",
                source_url=req.source_url,
                detail=exc.detail,
            )
        return await self._create(req, index)

    async def import_many(self, images: List[ImportRequest]) -> BulkImportResult:
        """
        Bulk form: one index build for the whole batch. Fingerprints created
        during the batch are tracked so repeats within the batch are skipped
        even with the pre-check off. Stops at the first error.
        """
        try:
            index = await self._load_index()
        except UpstreamError as exc:
            return BulkImportResult(status="error", message="Could not check existing products", detail=exc.detail)
        if index is None:
            index = set()

        results: List[ImportResult] = []
        for req in images:
            result = await self._create(req, index)
            results.append(result)
            if result.status == "error":
                return BulkImportResult(
                    status="error",
                    message=f"Import stopped after {len(results) - 1} of {len(images)} image(s)",
                    results=results,
                    detail=result.detail,
                )
            if result.status == "added":
                index.add(result.fingerprint)

        added = sum(1 for r in results if r.status == "added")
        return BulkImportResult(
            status="added" if added else "duplicate",
            message=f"Added {added} of {len(images)} image(s)",
            results=results,
        )
