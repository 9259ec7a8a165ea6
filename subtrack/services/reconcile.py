import logging
import re
from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy.orm import Session
from subtrack.db import rankings_repo, repo
from subtrack.exceptions import ClickUpNotConfiguredError, InvalidRequestError
from subtrack.models.db_models import Geo, GeoBrandRanking, SubId
from subtrack.services import subids
from subtrack.services.bulk import fold_items
from subtrack.services.clickup import (
    TARGET_GEO_FIELDS,
    WEBSITE_FIELDS,
    ClickUpClient,
    find_custom_field,
    live_url,
    task_description,
)
from subtrack.services.normalizer import match_geo, normalize_geo

log = logging.getLogger(__name__)

_PM_PREFIX = re.compile(r"^\*pm-", re.I)


def clean_website_name(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    return _PM_PREFIX.sub("", name.strip()) or None


def match_featured_brand(rankings: Sequence[GeoBrandRanking], task: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Best-placed featured brand mentioned in the task name or description."""
    haystack = f"{task.get('name') or ''}\n{task_description(task)}".lower()
    for r in rankings:
        if r.position is None:
            continue
        pattern = r"(?<!\w)" + re.escape(r.brand.name.lower()) + r"(?!\w)"
        if re.search(pattern, haystack):
            return {"position": r.position, "brand_name": r.brand.name}
    return None


def reconcile_task(db: Session, task_id: str, task: Dict[str, Any], geos: Sequence[Geo]) -> Dict[str, Any]:
    geo_label = find_custom_field(task, TARGET_GEO_FIELDS)
    geo = match_geo(geo_label, geos) if geo_label else None
    website_name = clean_website_name(find_custom_field(task, WEBSITE_FIELDS))
    website = repo.find_website_by_name(db, website_name) if website_name else None
    brand_match = None
    if geo is not None:
        brand_match = match_featured_brand(rankings_repo.featured_rankings(db, geo.id), task)
    existing = repo.find_sub_id_by_task(db, task_id)
    return {
        "task_id": task_id,
        "website_name": website.name if website else website_name,
        "website_id": website.id if website else None,
        "detected_geo": {"id": geo.id, "code": geo.code, "name": geo.name} if geo else None,
        "geo_candidate": normalize_geo(geo_label) if geo_label else None,
        "needs_setup": bool(geo_label) and geo is None,
        "brand_match": brand_match,
        "sub_id_exists": existing is not None,
        "sub_id_value": existing.value if existing else None,
        "error": None,
    }


async def reconcile_tasks(db: Session, clickup: ClickUpClient, task_ids: Sequence[str]) -> List[Dict[str, Any]]:
    if not clickup.configured:
        raise ClickUpNotConfiguredError()
    geos = rankings_repo.list_geos(db)
    ids = [t.strip() for t in task_ids if t and t.strip()]

    async def _one(task_id: str) -> Dict[str, Any]:
        task = await clickup.get_task(task_id)
        return reconcile_task(db, task_id, task, geos)

    outcome = await fold_items(ids, _one, key=lambda t: t)
    by_id = {r["task_id"]: r for r in outcome.successes}
    for failure in outcome.failures:
        by_id[failure["task_id"]] = {
            "task_id": failure["task_id"], "website_name": None, "website_id": None,
            "detected_geo": None, "geo_candidate": None, "needs_setup": False,
            "brand_match": None, "sub_id_exists": False, "sub_id_value": None,
            "error": failure["error"],
        }
    return [by_id[t] for t in ids]


async def create_sub_id_from_task(db: Session, clickup: ClickUpClient, task_id: str, website_id: str) -> SubId:
    task_id = task_id.strip()
    website = repo.get_website(db, website_id)
    if repo.find_sub_id_by_task(db, task_id) is not None:
        raise InvalidRequestError(f"A Sub-ID is already linked to task {task_id}")
    url = live_url(await clickup.get_task(task_id))
    row = subids.create_sub_id(db, website, url=url, clickup_task_id=task_id, is_immutable=bool(url))
    log.info("created sub-id %s from task %s", row.value, task_id)
    return row
