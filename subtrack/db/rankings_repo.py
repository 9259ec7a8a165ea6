import logging
from typing import Dict, List, Optional, Sequence
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from subtrack.exceptions import InvalidRequestError, NotFoundError
from subtrack.models.db_models import Brand, BrandList, Geo, GeoBrandRanking, now_ms

log = logging.getLogger(__name__)


def _commit(db: Session, conflict_msg: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise InvalidRequestError(conflict_msg) from e


# GEOs

def list_geos(db: Session) -> List[Geo]:
    return list(db.scalars(select(Geo).order_by(Geo.sort_order, Geo.code)))


def get_geo(db: Session, geo_id: str) -> Geo:
    geo = db.get(Geo, geo_id)
    if geo is None:
        raise NotFoundError("GEO not found")
    return geo


def find_geo_by_code(db: Session, code: str) -> Optional[Geo]:
    return db.scalars(select(Geo).where(Geo.code == code)).first()


def create_geo(db: Session, code: str, name: str, sort_order: Optional[int] = None) -> Geo:
    if sort_order is None:
        sort_order = len(list_geos(db))
    geo = Geo(code=code, name=name, sort_order=sort_order)
    db.add(geo)
    _commit(db, f"GEO code already exists: {code}")
    return geo


def update_geo(db: Session, geo: Geo, **fields) -> Geo:
    for key, value in fields.items():
        setattr(geo, key, value)
    _commit(db, "GEO code already exists")
    return geo


def delete_geo(db: Session, geo: Geo) -> None:
    db.delete(geo)
    db.commit()


def reorder_geos(db: Session, geo_ids: Sequence[str]) -> List[Geo]:
    geos = {g.id: g for g in list_geos(db)}
    missing = [gid for gid in geo_ids if gid not in geos]
    if missing:
        raise NotFoundError(f"Unknown GEO id(s): {', '.join(missing)}")
    for idx, gid in enumerate(geo_ids):
        geos[gid].sort_order = idx
    db.commit()
    return list_geos(db)


# Brands

def list_brands(db: Session) -> List[Brand]:
    return list(db.scalars(select(Brand).order_by(Brand.name)))


def get_brand(db: Session, brand_id: str) -> Brand:
    brand = db.get(Brand, brand_id)
    if brand is None:
        raise NotFoundError("Brand not found")
    return brand


def find_brand_by_name(db: Session, name: str) -> Optional[Brand]:
    return db.scalars(select(Brand).where(Brand.name == name)).first()


def create_brand(db: Session, name: str, default_url: Optional[str] = None,
                 status: str = "active") -> Brand:
    brand = Brand(name=name, default_url=default_url, status=status)
    db.add(brand)
    _commit(db, f"Brand already exists: {name}")
    return brand


def update_brand(db: Session, brand: Brand, **fields) -> Brand:
    for key, value in fields.items():
        setattr(brand, key, value)
    _commit(db, "Brand name already exists")
    return brand


def delete_brand(db: Session, brand: Brand) -> None:
    db.delete(brand)
    db.commit()


# Brand lists

def list_brand_lists(db: Session, geo_id: str) -> List[BrandList]:
    stmt = select(BrandList).where(BrandList.geo_id == geo_id).order_by(BrandList.sort_order, BrandList.name)
    return list(db.scalars(stmt))


def get_brand_list(db: Session, list_id: str) -> BrandList:
    row = db.get(BrandList, list_id)
    if row is None:
        raise NotFoundError("Brand list not found")
    return row


def create_brand_list(db: Session, geo_id: str, name: str, sort_order: int = 0) -> BrandList:
    row = BrandList(geo_id=geo_id, name=name, sort_order=sort_order)
    db.add(row)
    db.commit()
    return row


def update_brand_list(db: Session, row: BrandList, **fields) -> BrandList:
    for key, value in fields.items():
        setattr(row, key, value)
    db.commit()
    return row


def delete_brand_list(db: Session, row: BrandList) -> None:
    db.delete(row)
    db.commit()


# Rankings

def list_rankings(db: Session, geo_id: str) -> List[GeoBrandRanking]:
    """Featured rankings by position, then "other" brands by name."""
    stmt = (
        select(GeoBrandRanking)
        .where(GeoBrandRanking.geo_id == geo_id)
        .options(selectinload(GeoBrandRanking.brand))
    )
    rows = list(db.scalars(stmt))
    featured = sorted((r for r in rows if r.position is not None), key=lambda r: r.position)
    others = sorted((r for r in rows if r.position is None), key=lambda r: r.brand.name.lower())
    return featured + others


def featured_rankings(db: Session, geo_id: str) -> List[GeoBrandRanking]:
    return [r for r in list_rankings(db, geo_id) if r.position is not None]


def get_ranking(db: Session, ranking_id: str) -> GeoBrandRanking:
    row = db.get(GeoBrandRanking, ranking_id)
    if row is None:
        raise NotFoundError("Ranking not found")
    return row


def create_ranking(db: Session, geo_id: str, brand_id: str, position: Optional[int] = None,
                   affiliate_link: Optional[str] = None, list_id: Optional[str] = None) -> GeoBrandRanking:
    row = GeoBrandRanking(geo_id=geo_id, brand_id=brand_id, position=position,
                          affiliate_link=affiliate_link, list_id=list_id, timestamp=now_ms())
    db.add(row)
    _commit(db, "Brand or position already ranked for this GEO")
    return row


def update_ranking(db: Session, row: GeoBrandRanking, **fields) -> GeoBrandRanking:
    for key, value in fields.items():
        setattr(row, key, value)
    row.timestamp = now_ms()
    _commit(db, "Brand or position already ranked for this GEO")
    return row


def delete_ranking(db: Session, row: GeoBrandRanking) -> None:
    db.delete(row)
    db.commit()


def replace_rankings(db: Session, geo_id: str, rows: Sequence[Dict]) -> List[GeoBrandRanking]:
    """Swap the GEO's whole ranking set in one transaction.

    Any failure rolls back the delete as well, so the previous rankings stay.
    """
    try:
        db.execute(delete(GeoBrandRanking).where(GeoBrandRanking.geo_id == geo_id))
        for item in rows:
            db.add(GeoBrandRanking(geo_id=geo_id, timestamp=now_ms(), **item))
        db.flush()
        db.commit()
    except IntegrityError as e:
        db.rollback()
        log.warning("ranking replace for geo %s rolled back: %s", geo_id, e.orig)
        raise InvalidRequestError("Rankings conflict: duplicate brand or position, or unknown brand") from e
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    return list_rankings(db, geo_id)
