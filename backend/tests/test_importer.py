from stockshop.fingerprint import fingerprint
from stockshop.importer import (
    DEFAULT_STOCK,
    DEFAULT_TITLE,
    IMPORTED_TAG,
    ProductImporter,
    build_variants,
    normalize_title,
    resolve_tier,
)
from stockshop.inventory import InventoryIndexBuilder, TagPrefixExtractor
from stockshop.models import ImportRequest


def _importer(shopify, precheck=True):
    builder = InventoryIndexBuilder(shopify, [TagPrefixExtractor()])
    return ProductImporter(shopify, builder, precheck=precheck)


def test_normalize_title():
    assert normalize_title(None) == DEFAULT_TITLE
    assert normalize_title("   ") == DEFAULT_TITLE
    assert normalize_title(" Retro Jersey ") == "Retro Jersey"


def test_pricing_tier_prices_largest_size_higher():
    variants = build_variants(resolve_tier("499-599"))
    prices = {v["option1"]: v["price"] for v in variants}
    assert prices.pop("3XL") == "599.00"
    assert set(prices.values()) == {"499.00"}
    assert all(v["inventory_quantity"] == DEFAULT_STOCK for v in variants)


def test_unknown_tier_falls_back_to_default():
    assert resolve_tier("999-1099") == resolve_tier(None) == resolve_tier("") == "399-499"
    prices = [v["price"] for v in build_variants(resolve_tier("bogus"))]
    assert prices[-1] == "499.00" and prices[0] == "399.00"


def test_blank_title_is_submitted_as_default(upstream, run_shopify):
    result = run_shopify(lambda s: _importer(s).import_product(ImportRequest(title="", source_url="https://x")))
    assert result.status == "added"
    assert upstream.created[0]["title"] == DEFAULT_TITLE


def test_created_product_carries_fingerprint_tag_and_metafield(upstream, run_shopify):
    url = "https://img.freepik.com/jersey.jpg"
    req = ImportRequest(title="Jersey", source_url=url, pricing_tier="499-599")
    run_shopify(lambda s: _importer(s).import_product(req))

    product = upstream.created[0]
    fp = fingerprint(url)
    assert product["images"] == [{"src": url}]
    assert product["tags"].split(", ") == [IMPORTED_TAG, fp, "tier-499-599"]
    assert {"namespace": "custom", "key": "image_fingerprint", "type": "single_line_text_field", "value": fp} in product["metafields"]
    assert len(product["variants"]) == 7
    raw_url = {"namespace": "custom", "key": "freepik.image_url", "type": "single_line_text_field", "value": url}
    assert raw_url in product["metafields"]


def test_no_variants_without_pricing_tier(upstream, run_shopify):
    run_shopify(lambda s: _importer(s).import_product(ImportRequest(source_url="https://x/1.png")))
    assert "variants" not in upstream.created[0]


def test_precheck_reports_duplicate_without_creating(upstream, run_shopify):
    url = "https://x/1.png"
    upstream.product_pages = [[{"id": 9, "tags": f"{IMPORTED_TAG}, {fingerprint(url)}"}]]
    result = run_shopify(lambda s: _importer(s).import_product(ImportRequest(source_url=url)))
    assert result.status == "duplicate"
    assert upstream.created == []


def test_without_precheck_no_listing_is_read(upstream, run_shopify):
    run_shopify(lambda s: _importer(s, precheck=False).import_product(ImportRequest(source_url="https://x/1.png")))
    assert upstream.listing_calls("products") == []
    assert len(upstream.created) == 1


def test_platform_error_is_surfaced_verbatim(upstream, run_shopify):
    upstream.create_status = 422
    result = run_shopify(lambda s: _importer(s).import_product(ImportRequest(source_url="https://x/1.png")))
    assert result.status == "error"
    assert result.detail == {"errors": {"title": ["can't be blank"]}}
    # single attempt
    assert len([c for c in upstream.calls if c[0] == "POST"]) == 1


def test_failed_precheck_is_an_error_not_a_pass(upstream, run_shopify):
    upstream.fail_pages["products"] = 0
    result = run_shopify(lambda s: _importer(s).import_product(ImportRequest(source_url="https://x/1.png")))
    assert result.status == "error"
    assert upstream.created == []


def test_bulk_import_skips_repeats_within_batch(upstream, run_shopify):
    images = [
        ImportRequest(title="A", source_url="https://x/a.png"),
        ImportRequest(title="A again", source_url="https://x/a.png"),
        ImportRequest(title="B", source_url="https://x/b.png"),
    ]
    result = run_shopify(lambda s: _importer(s).import_many(images))
    assert [r.status for r in result.results] == ["added", "duplicate", "added"]
    assert result.status == "added"
    assert len(upstream.created) == 2
    assert len(upstream.listing_calls("products")) == 1


def test_bulk_import_stops_at_first_error(upstream, run_shopify):
    upstream.create_status = 500
    images = [ImportRequest(source_url="https://x/a.png"), ImportRequest(source_url="https://x/b.png")]
    result = run_shopify(lambda s: _importer(s).import_many(images))
    assert result.status == "error"
    assert len(result.results) == 1
