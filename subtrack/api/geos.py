from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from subtrack.db import rankings_repo as rr
from subtrack.db.repo import get_db
from subtrack.exceptions import InvalidRequestError
from subtrack.models.schemas import (
    BrandCreate,
    BrandListCreate,
    BrandListRead,
    BrandListUpdate,
    BrandRead,
    BrandUpdate,
    GeoCreate,
    GeoRead,
    GeoReorder,
    GeoResolution,
    GeoUpdate,
    RankingBulkRequest,
    RankingCreate,
    RankingRead,
    RankingUpdate,
)
from subtrack.services.normalizer import match_geo, normalize_geo

router = APIRouter(prefix="/api", tags=["geos"])


def _check_list(db: Session, geo_id: str, list_id):
    if list_id is not None and rr.get_brand_list(db, list_id).geo_id != geo_id:
        raise InvalidRequestError("Brand list belongs to another GEO")


# GEOs

@router.get("/geos", response_model=List[GeoRead])
def list_geos(db: Session = Depends(get_db)):
    return rr.list_geos(db)


@router.get("/geos/resolve", response_model=GeoResolution)
def resolve_geo(label: str, db: Session = Depends(get_db)):
    geo = match_geo(label, rr.list_geos(db))
    return GeoResolution(label=label, candidate=normalize_geo(label), geo=geo,
                         needs_setup=geo is None)


@router.post("/geos", response_model=GeoRead)
def create_geo(req: GeoCreate, db: Session = Depends(get_db)):
    return rr.create_geo(db, code=normalize_geo(req.code), name=req.name.strip(), sort_order=req.sort_order)


@router.post("/geos/reorder", response_model=List[GeoRead])
def reorder_geos(req: GeoReorder, db: Session = Depends(get_db)):
    return rr.reorder_geos(db, req.geo_ids)


@router.put("/geos/{geo_id}", response_model=GeoRead)
@router.patch("/geos/{geo_id}", response_model=GeoRead)
def update_geo(geo_id: str, req: GeoUpdate, db: Session = Depends(get_db)):
    fields = req.model_dump(exclude_unset=True, exclude_none=True)
    if "code" in fields:
        fields["code"] = normalize_geo(fields["code"])
    return rr.update_geo(db, rr.get_geo(db, geo_id), **fields)


@router.delete("/geos/{geo_id}")
def delete_geo(geo_id: str, db: Session = Depends(get_db)):
    rr.delete_geo(db, rr.get_geo(db, geo_id))
    return {"success": True}


# Brands

@router.get("/brands", response_model=List[BrandRead])
def list_brands(db: Session = Depends(get_db)):
    return rr.list_brands(db)


@router.post("/brands", response_model=BrandRead)
def create_brand(req: BrandCreate, db: Session = Depends(get_db)):
    return rr.create_brand(db, name=req.name.strip(), default_url=req.default_url, status=req.status)


@router.put("/brands/{brand_id}", response_model=BrandRead)
@router.patch("/brands/{brand_id}", response_model=BrandRead)
def update_brand(brand_id: str, req: BrandUpdate, db: Session = Depends(get_db)):
    return rr.update_brand(db, rr.get_brand(db, brand_id), **req.model_dump(exclude_unset=True))


@router.delete("/brands/{brand_id}")
def delete_brand(brand_id: str, db: Session = Depends(get_db)):
    rr.delete_brand(db, rr.get_brand(db, brand_id))
    return {"success": True}


# Brand lists

@router.get("/geos/{geo_id}/lists", response_model=List[BrandListRead])
def list_brand_lists(geo_id: str, db: Session = Depends(get_db)):
    rr.get_geo(db, geo_id)
    return rr.list_brand_lists(db, geo_id)


@router.post("/geos/{geo_id}/lists", response_model=BrandListRead)
def create_brand_list(geo_id: str, req: BrandListCreate, db: Session = Depends(get_db)):
    rr.get_geo(db, geo_id)
    return rr.create_brand_list(db, geo_id, name=req.name.strip(), sort_order=req.sort_order)


@router.patch("/lists/{list_id}", response_model=BrandListRead)
def update_brand_list(list_id: str, req: BrandListUpdate, db: Session = Depends(get_db)):
    return rr.update_brand_list(db, rr.get_brand_list(db, list_id), **req.model_dump(exclude_unset=True))


@router.delete("/lists/{list_id}")
def delete_brand_list(list_id: str, db: Session = Depends(get_db)):
    rr.delete_brand_list(db, rr.get_brand_list(db, list_id))
    return {"success": True}


# Rankings

@router.get("/geos/{geo_id}/rankings", response_model=List[RankingRead])
def list_rankings(geo_id: str, db: Session = Depends(get_db)):
    rr.get_geo(db, geo_id)
    return rr.list_rankings(db, geo_id)


@router.post("/geos/{geo_id}/rankings", response_model=RankingRead)
def create_ranking(geo_id: str, req: RankingCreate, db: Session = Depends(get_db)):
    rr.get_geo(db, geo_id)
    rr.get_brand(db, req.brand_id)
    _check_list(db, geo_id, req.list_id)
    return rr.create_ranking(db, geo_id, req.brand_id, position=req.position,
                             affiliate_link=req.affiliate_link, list_id=req.list_id)


@router.post("/geos/{geo_id}/rankings/bulk", response_model=List[RankingRead])
def replace_rankings(geo_id: str, req: RankingBulkRequest, db: Session = Depends(get_db)):
    rr.get_geo(db, geo_id)
    for r in req.rankings:
        _check_list(db, geo_id, r.list_id)
    return rr.replace_rankings(db, geo_id, [r.model_dump() for r in req.rankings])


@router.put("/rankings/{ranking_id}", response_model=RankingRead)
def update_ranking(ranking_id: str, req: RankingUpdate, db: Session = Depends(get_db)):
    row = rr.get_ranking(db, ranking_id)
    fields = req.model_dump(exclude_unset=True)
    _check_list(db, row.geo_id, fields.get("list_id"))
    return rr.update_ranking(db, row, **fields)


@router.delete("/rankings/{ranking_id}")
def delete_ranking(ranking_id: str, db: Session = Depends(get_db)):
    rr.delete_ranking(db, rr.get_ranking(db, ranking_id))
    return {"success": True}
