import logging
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse, RedirectResponse

from ..auth import is_valid_shop, verify_hmac
from ..config import Settings
from ..deps import get_http, get_settings
from ..errors import UpstreamError
from ..shopify_client import exchange_oauth_code

logger = logging.getLogger(__name__)

router = APIRouter()

SCOPES = "read_products,write_products"


@router.get("")
def install(shop: str = "", settings: Settings = Depends(get_settings)):
    if not shop:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing shop parameter")
    if not is_valid_shop(shop):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid shop domain")
    query = urlencode(
        {"client_id": settings.shopify_api_key, "scope": SCOPES, "redirect_uri": settings.redirect_uri}
    )
    return RedirectResponse(f"https://{shop}/admin/oauth/authorize?{query}", status_code=status.HTTP_302_FOUND)


@router.get("/callback", response_class=PlainTextResponse)
async def callback(
    request: Request,
    settings: Settings = Depends(get_settings),
    http: httpx.AsyncClient = Depends(get_http),
):
    """
    Finish the install: verify the signed redirect, then exchange the code.
    The token is not persisted.
    """
    params = dict(request.query_params)
    shop, code = params.get("shop"), params.get("code")
    if not shop or not params.get("hmac") or not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required parameters")
    if not is_valid_shop(shop):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid shop domain")
    if not verify_hmac(params, settings.shopify_api_secret):
        logger.warning("Rejected install callback for %s: HMAC mismatch", shop)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="HMAC validation failed")

    try:
        await exchange_oauth_code(http, shop, settings.shopify_api_key, settings.shopify_api_secret, code)
    except UpstreamError as exc:
        logger.error("OAuth token exchange failed for %s: %s", shop, exc.detail)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="OAuth process failed") from exc
    logger.info("App installed on %s", shop)
    return "App installed successfully. You can close this tab."
