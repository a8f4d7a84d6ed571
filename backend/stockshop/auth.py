import hashlib
import hmac
import re
from typing import Mapping

SHOP_DOMAIN_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\-]*\.myshopify\.com$")


def is_valid_shop(shop: str) -> bool:
    return bool(shop and SHOP_DOMAIN_RE.match(shop))


def hmac_message(params: Mapping[str, str]) -> str:
    """`key=value` pairs sorted by key and joined with `&`, minus the signature itself."""
    return "&".join(f"{key}={params[key]}" for key in sorted(params) if key != "hmac")


def verify_hmac(params: Mapping[str, str], secret: str) -> bool:
    """
    Check the signature Shopify attaches to install redirects.
    """
    supplied = params.get("hmac")
    if not supplied or not secret:
        return False
    expected = hmac.new(secret.encode("utf-8"), hmac_message(params).encode("utf-8"), hashlib.sha256).hexdigest()
    # bytes, so a non-ASCII signature is a mismatch rather than a TypeError
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))
