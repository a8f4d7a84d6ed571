import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_freepik, get_index_builder
from ..errors import UpstreamError
from ..freepik_client import FreepikClient
from ..inventory import InventoryIndexBuilder, classify, parse_search_results

logger = logging.getLogger(__name__)

router = APIRouter()


def _upstream_failure(exc: UpstreamError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.to_dict())


@router.get("/search")
async def search(
    term: str = Query(default="jersey"),
    page: int = Query(default=1, ge=1),
    annotate: bool = Query(default=True),
    freepik: FreepikClient = Depends(get_freepik),
    index_builder: InventoryIndexBuilder = Depends(get_index_builder),
):
    """
    Proxy the image search. Each hit gains `sourceUrl`, `fingerprint` and
    `duplicate`; a failed index build fails the whole search rather than
    reporting everything as new.
    """
    term = term.strip() or "jersey"
    try:
        payload = await freepik.search(term, page)
    except UpstreamError as exc:
        raise _upstream_failure(exc) from exc
    if not annotate:
        return payload

    try:
        index = await index_builder.build()
    except UpstreamError as exc:
        logger.warning("Duplicate status unknown for %r: %s", term, exc)
        raise _upstream_failure(exc) from exc

    items = payload.get("data") if isinstance(payload.get("data"), list) else []
    classified = classify(parse_search_results(payload), index)
    data = []
    for item, result in zip(items, classified):
        row = dict(item) if isinstance(item, dict) else {}
        row.update(result.model_dump(by_alias=True))
        data.append(row)
    return {"data": data, "meta": payload.get("meta")}


@router.get("/shopify-hashes", response_model=List[str])
async def shopify_hashes(index_builder: InventoryIndexBuilder = Depends(get_index_builder)):
    try:
        index = await index_builder.build()
    except UpstreamError as exc:
        raise _upstream_failure(exc) from exc
    return sorted(index)
