"""Sync the GEO table to the canonical market list.

    python -m subtrack.seed
"""
import logging
from typing import Dict, List, Sequence
from sqlalchemy.orm import Session
from subtrack.db import rankings_repo
from subtrack.db.repo import get_session
from subtrack.db.session import init_db
from subtrack.logging_conf import configure_logging

log = logging.getLogger(__name__)

DEFAULT_GEOS: List[Dict[str, str]] = [
    {"code": "USA", "name": "USA"},
    {"code": "AU", "name": "Australia"},
    {"code": "CA", "name": "Canada"},
    {"code": "UK", "name": "UK"},
    {"code": "NZ", "name": "New Zealand"},
    {"code": "ZA", "name": "South Africa"},
    {"code": "IE", "name": "Ireland"},
    {"code": "DE", "name": "Germany"},
    {"code": "IT", "name": "Italy"},
    {"code": "SE", "name": "Sweden"},
    {"code": "NL", "name": "Netherlands"},
]


def sync_geos(db: Session, desired: Sequence[Dict[str, str]] = DEFAULT_GEOS) -> Dict[str, List[str]]:
    """Remove GEOs outside ``desired`` (rankings go with them), add missing ones
    and put them all in ``desired`` order."""
    wanted = {g["code"] for g in desired}
    removed, created = [], []
    for geo in rankings_repo.list_geos(db):
        if geo.code not in wanted:
            rankings_repo.delete_geo(db, geo)
            removed.append(geo.code)
            log.info("removed GEO %s (%s)", geo.code, geo.name)
    for idx, g in enumerate(desired):
        geo = rankings_repo.find_geo_by_code(db, g["code"])
        if geo is None:
            rankings_repo.create_geo(db, code=g["code"], name=g["name"], sort_order=idx)
            created.append(g["code"])
            log.info("created GEO %s (%s)", g["code"], g["name"])
        elif geo.sort_order != idx:
            rankings_repo.update_geo(db, geo, sort_order=idx)
    return {"removed": removed, "created": created}


def main():
    configure_logging()
    init_db()
    with get_session() as db:
        result = sync_geos(db)
    log.info("GEO sync complete: %d created, %d removed", len(result["created"]), len(result["removed"]))


if __name__ == "__main__":
    main()
