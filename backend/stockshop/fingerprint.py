"""
Deterministic identifiers for imported images.

A fingerprint is ``fpimg-`` followed by the first ``DIGEST_LENGTH`` hex chars
of the SHA-256 digest of the image's source URL. It is stored on the product
as a tag and as a metafield, so a later index build can recover it.

``DIGEST_LENGTH`` trades tag length for collision risk. The legacy length of
8 hex chars (32 bits) reaches a ~1% collision chance at roughly 9,000 images,
which would silently mark unrelated images as duplicates. 32 hex chars
(128 bits) keeps the tag at 38 chars, well under the platform's 255-char tag
limit, with negligible collision risk at any catalog size.
"""
import hashlib

MARKER = "fpimg-"
DIGEST_LENGTH = 32


def fingerprint(url: str) -> str:
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
    return f"{MARKER}{digest[:DIGEST_LENGTH]}"


def is_fingerprint(value) -> bool:
    return isinstance(value, str) and value.startswith(MARKER) and len(value) > len(MARKER)
