from typing import Any, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# --- image provider ---
# One search hit; only the fields duplicate detection needs.
class ImageResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")


class ClassifiedImage(ImageResult):
    fingerprint: Optional[str] = None
    duplicate: bool = False


# --- imports ---
class ImportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    # Older clients post `imageUrl`; bulk items use `url`.
    source_url: str = Field(
        min_length=1,
        validation_alias=AliasChoices("sourceUrl", "imageUrl", "url", "source_url"),
        serialization_alias="sourceUrl",
    )
    pricing_tier: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("pricingTier", "pricing_tier"),
        serialization_alias="pricingTier",
    )


class BulkImportRequest(BaseModel):
    images: List[ImportRequest] = Field(min_length=1)


ImportStatus = Literal["added", "duplicate", "error"]


class ImportResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: ImportStatus
    message: str
    title: Optional[str] = None
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")
    fingerprint: Optional[str] = None
    detail: Optional[Any] = None


class BulkImportResult(BaseModel):
    status: ImportStatus
    message: str
    results: List[ImportResult] = []
    detail: Optional[Any] = None
