from typing import Union

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..deps import get_importer
from ..importer import ProductImporter
from ..models import BulkImportRequest, ImportRequest

router = APIRouter()


@router.post("/add-to-shopify")
async def add_to_shopify(
    payload: Union[BulkImportRequest, ImportRequest],
    importer: ProductImporter = Depends(get_importer),
):
    """
    Create a product from one image (`{title, sourceUrl, pricingTier}`) or
    several (`{images: [{title, url}]}`). Duplicates are reported, not created.
    """
    if isinstance(payload, BulkImportRequest):
        result = await importer.import_many(payload.images)
    else:
        result = await importer.import_product(payload)
    code = status.HTTP_500_INTERNAL_SERVER_ERROR if result.status == "error" else status.HTTP_200_OK
    return JSONResponse(status_code=code, content=result.model_dump(mode="json", by_alias=True, exclude_none=True))
