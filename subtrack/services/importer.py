"""Load a "top picks by GEO" spreadsheet into rankings.

The sheet is a grid: first column holds the position (1-10), every other
column header names a GEO and its cells name the brand at that position.
"""
import logging
import pandas as pd
from dataclasses import dataclass, field
from typing import Dict, List
from sqlalchemy.orm import Session
from subtrack.db import rankings_repo
from subtrack.exceptions import InvalidRequestError
from subtrack.models.db_models import Brand, Geo
from subtrack.services.normalizer import clean_text, normalize_geo

log = logging.getLogger(__name__)

_EMPTY_CELLS = {"", "new", "nan", "none", "null", "undefined"}


@dataclass
class ImportSummary:
    geos_created: List[str] = field(default_factory=list)
    brands_created: List[str] = field(default_factory=list)
    rankings_created: int = 0
    skipped: List[str] = field(default_factory=list)


def read_workbook(path: str) -> pd.DataFrame:
    return pd.read_excel(path, sheet_name=0)


def _position(value) -> int:
    try:
        pos = int(float(value))
    except (TypeError, ValueError):
        return 0
    return pos if 1 <= pos <= 10 else 0


def import_rankings_frame(db: Session, frame: pd.DataFrame) -> ImportSummary:
    summary = ImportSummary()
    if frame.empty or len(frame.columns) < 2:
        return summary
    pos_col, geo_cols = frame.columns[0], list(frame.columns[1:])

    geos: Dict[str, Geo] = {}
    for col in geo_cols:
        label = clean_text(str(col)) or ""
        code = normalize_geo(label)
        if not code or code.startswith("UNNAMED"):
            continue
        geo = rankings_repo.find_geo_by_code(db, code)
        if geo is None:
            geo = rankings_repo.create_geo(db, code=code, name=label)
            summary.geos_created.append(code)
            log.info("created GEO %s (%s)", code, label)
        geos[col] = geo

    brands: Dict[str, Brand] = {}
    for _, row in frame.iterrows():
        position = _position(row[pos_col])
        if not position:
            continue
        for col, geo in geos.items():
            name = clean_text(str(row[col]) if pd.notna(row[col]) else "") or ""
            if name.lower() in _EMPTY_CELLS:
                continue
            brand = brands.get(name) or rankings_repo.find_brand_by_name(db, name)
            if brand is None:
                brand = rankings_repo.create_brand(db, name=name)
                summary.brands_created.append(name)
            brands[name] = brand
            try:
                rankings_repo.create_ranking(db, geo.id, brand.id, position=position)
            except InvalidRequestError:
                summary.skipped.append(f"{geo.code} #{position} {name}")
                continue
            summary.rankings_created += 1
    log.info("import finished: %d rankings, %d skipped", summary.rankings_created, len(summary.skipped))
    return summary
