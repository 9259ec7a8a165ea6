from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Websites / Sub-IDs

class WebsiteCreate(BaseModel):
    name: str = Field(..., min_length=1)
    format_pattern: str = Field(..., min_length=1)

class WebsiteRead(ORMModel):
    id: str
    name: str
    format_pattern: str
    sub_id_count: int = 0

class SubIdRead(ORMModel):
    id: str
    website_id: str
    value: str
    url: Optional[str] = None
    clickup_task_id: Optional[str] = None
    comment_posted: bool = False
    timestamp: int
    is_immutable: bool = False

class SubIdCreate(BaseModel):
    value: Optional[str] = None  # generated from the website pattern when missing
    url: Optional[str] = None
    clickup_task_id: Optional[str] = None

class SubIdUpdate(BaseModel):
    value: Optional[str] = None
    url: Optional[str] = None

class BulkSubIdItem(BaseModel):
    value: Optional[str] = None
    url: Optional[str] = None
    clickup_task_id: Optional[str] = None

class BulkSubIdRequest(BaseModel):
    sub_ids: List[BulkSubIdItem]

class DuplicateSubId(BaseModel):
    value: str
    website_ids: List[str]


# ClickUp

class ClickUpLinkRequest(BaseModel):
    clickup_task_id: str = Field(..., min_length=1)

class ClickUpBulkImportRequest(BaseModel):
    task_ids: List[Any] = Field(..., min_length=1)

class ItemError(BaseModel):
    task_id: Optional[Any] = None
    sub_id: Optional[str] = None
    error: str

class ClickUpBulkImportResult(BaseModel):
    success: int
    created: List[SubIdRead]
    errors: List[ItemError] = []
    urls_populated: int

class RefreshUrlsResult(BaseModel):
    updated: int
    checked: int
    updated_sub_ids: List[SubIdRead] = []
    errors: List[ItemError] = []
    message: Optional[str] = None

class CommentRequest(BaseModel):
    comment: Optional[str] = None

class CommentPreview(BaseModel):
    text: str
    comment: List[Dict[str, Any]]

class CommentPosted(BaseModel):
    success: bool = True
    comment: Dict[str, Any] = {}

class BulkCommentResult(BaseModel):
    posted: int
    checked: int
    sub_ids: List[SubIdRead] = []
    errors: List[ItemError] = []

class AffiliateLink(BaseModel):
    url: str
    param: Optional[str] = None
    value: Optional[str] = None

class AffiliateLinks(BaseModel):
    links: List[AffiliateLink] = []


# GEOs / brands / rankings

class GeoCreate(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    sort_order: Optional[int] = None

class GeoUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    sort_order: Optional[int] = None

class GeoRead(ORMModel):
    id: str
    code: str
    name: str
    sort_order: int

class GeoReorder(BaseModel):
    geo_ids: List[str]

class GeoResolution(BaseModel):
    label: str
    candidate: str
    geo: Optional[GeoRead] = None
    needs_setup: bool

class BrandCreate(BaseModel):
    name: str = Field(..., min_length=1)
    default_url: Optional[str] = None
    status: str = "active"

class BrandUpdate(BaseModel):
    name: Optional[str] = None
    default_url: Optional[str] = None
    status: Optional[str] = None

class BrandRead(ORMModel):
    id: str
    name: str
    default_url: Optional[str] = None
    status: str

class BrandListCreate(BaseModel):
    name: str = Field(..., min_length=1)
    sort_order: int = 0

class BrandListUpdate(BaseModel):
    name: Optional[str] = None
    sort_order: Optional[int] = None

class BrandListRead(ORMModel):
    id: str
    geo_id: str
    name: str
    sort_order: int

class RankingCreate(BaseModel):
    brand_id: str
    position: Optional[int] = Field(None, ge=1, le=10)
    affiliate_link: Optional[str] = None
    list_id: Optional[str] = None

class RankingUpdate(BaseModel):
    position: Optional[int] = Field(None, ge=1, le=10)
    affiliate_link: Optional[str] = None
    list_id: Optional[str] = None

class RankingRead(ORMModel):
    id: str
    geo_id: str
    brand_id: str
    list_id: Optional[str] = None
    position: Optional[int] = None
    affiliate_link: Optional[str] = None
    timestamp: int
    brand: Optional[BrandRead] = None

class RankingBulkRequest(BaseModel):
    rankings: List[RankingCreate]

    @model_validator(mode="after")
    def _unique(self):
        brands = [r.brand_id for r in self.rankings]
        if len(brands) != len(set(brands)):
            raise ValueError("each brand may appear only once per GEO")
        positions = [r.position for r in self.rankings if r.position is not None]
        if len(positions) != len(set(positions)):
            raise ValueError("each featured position may be used only once")
        return self


# Reconciliation

class ReconcileRequest(BaseModel):
    task_ids: List[str] = Field(..., min_length=1)

    @field_validator("task_ids")
    @classmethod
    def _split(cls, v: List[str]) -> List[str]:
        ids = []
        for item in v:
            ids.extend(p.strip() for p in item.replace(",", "\n").splitlines() if p.strip())
        if not ids:
            raise ValueError("no valid task IDs found")
        return ids

class DetectedGeo(BaseModel):
    id: str
    code: str
    name: str

class BrandMatch(BaseModel):
    position: int
    brand_name: str

class ReconcileResult(BaseModel):
    task_id: str
    website_name: Optional[str] = None
    website_id: Optional[str] = None
    detected_geo: Optional[DetectedGeo] = None
    geo_candidate: Optional[str] = None
    needs_setup: bool = False
    brand_match: Optional[BrandMatch] = None
    sub_id_exists: bool = False
    sub_id_value: Optional[str] = None
    error: Optional[str] = None

class ReconcileResponse(BaseModel):
    results: List[ReconcileResult]

class CreateFromTaskRequest(BaseModel):
    task_id: str = Field(..., min_length=1)
    website_id: str = Field(..., min_length=1)
