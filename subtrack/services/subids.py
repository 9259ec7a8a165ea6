"""Sub-ID rules that sit above the plain store.

Immutable Sub-IDs (bulk imported, usually with a live URL) keep their value
and URL forever; every mutating path goes through here so the rule is
checked in one place.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy.orm import Session
from subtrack.db import repo
from subtrack.exceptions import (
    ClickUpError,
    ClickUpNotConfiguredError,
    ImmutableSubIdError,
    InvalidRequestError,
)
from subtrack.models.db_models import SubId, Website
from subtrack.services.bulk import fold_items
from subtrack.services.clickup import ClickUpClient, live_url, task_description
from subtrack.services.comment_builder import ClickUpComment, build_comment
from subtrack.services.subid_generator import generate_sub_id

log = logging.getLogger(__name__)

_UNSET: Any = object()


def create_sub_id(db: Session, website: Website, value: Optional[str] = None,
                  url: Optional[str] = None, clickup_task_id: Optional[str] = None,
                  is_immutable: bool = False) -> SubId:
    value = value or generate_sub_id(website.format_pattern)
    return repo.create_sub_id(db, website.id, value, url=url,
                              clickup_task_id=clickup_task_id, is_immutable=is_immutable)


def bulk_create_with_urls(db: Session, website: Website, items: Sequence[Dict]) -> List[SubId]:
    """All-or-nothing import; every row must carry a URL and ends up locked."""
    rows = []
    for idx, item in enumerate(items):
        if not item.get("url"):
            raise InvalidRequestError(f"Bulk imports must include a URL for each Sub-ID (item {idx})")
        rows.append({
            "value": item.get("value") or generate_sub_id(website.format_pattern),
            "url": item["url"],
            "clickup_task_id": item.get("clickup_task_id"),
            "is_immutable": True,
        })
    return repo.create_sub_ids_bulk(db, website.id, rows)


def update_sub_id(db: Session, row: SubId, value: Any = _UNSET, url: Any = _UNSET) -> SubId:
    if row.is_immutable:
        raise ImmutableSubIdError("Cannot modify immutable Sub-ID")
    if value is not _UNSET:
        if not value:
            raise InvalidRequestError("Sub-ID value cannot be empty")
        row.value = value
    if url is not _UNSET:
        row.url = url
    return repo.save_sub_id(db, row)


def delete_sub_id(db: Session, row: SubId) -> None:
    if row.is_immutable:
        raise ImmutableSubIdError("Cannot delete immutable Sub-ID")
    repo.delete_sub_id(db, row)


def delete_website(db: Session, website: Website) -> None:
    if repo.website_has_immutable_sub_ids(db, website.id):
        raise ImmutableSubIdError("Cannot delete website with immutable Sub-IDs")
    repo.delete_website(db, website)


def _apply_url(row: SubId, url: Optional[str]) -> bool:
    """Store a fetched live URL unless that would rewrite a locked one."""
    if not url or url == row.url:
        return False
    if row.is_immutable and row.url:
        log.info("sub-id %s is immutable, keeping url %s", row.id, row.url)
        return False
    row.url = url
    return True


async def link_task(db: Session, clickup: ClickUpClient, row: SubId, task_id: str) -> SubId:
    task_id = task_id.strip()
    if not task_id:
        raise InvalidRequestError("Invalid ClickUp task ID")
    row.clickup_task_id = task_id
    if clickup.configured:
        try:
            task = await clickup.get_task(task_id)
        except ClickUpError as e:
            # linking still goes ahead without the URL
            log.warning("could not fetch ClickUp task %s: %s", task_id, e)
        else:
            if _apply_url(row, live_url(task)):
                log.info("live url for task %s: %s", task_id, row.url)
    return repo.save_sub_id(db, row)


def unlink_task(db: Session, row: SubId) -> SubId:
    row.clickup_task_id = None
    return repo.save_sub_id(db, row)


async def import_tasks(db: Session, clickup: ClickUpClient, website: Website,
                       task_ids: Sequence[Any]) -> Dict[str, Any]:
    """One locked Sub-ID per task id, URL taken from the task's Live URL field."""
    errors: List[Dict[str, Any]] = []

    async def _one(task_id: Any) -> SubId:
        if not task_id or not isinstance(task_id, str) or not task_id.strip():
            raise InvalidRequestError("Invalid task ID format")
        task_id = task_id.strip()
        url = None
        if clickup.configured:
            try:
                url = live_url(await clickup.get_task(task_id))
            except ClickUpError as e:
                # the Sub-ID is still created, the fetch problem is reported
                errors.append({"task_id": task_id, "error": str(e)})
        row = create_sub_id(db, website, url=url, clickup_task_id=task_id, is_immutable=True)
        log.info("created sub-id %s for task %s%s", row.value, task_id, f" with url {url}" if url else "")
        return row

    outcome = await fold_items(task_ids, _one, key=lambda t: t, on_error=db.rollback)
    return {
        "success": len(outcome.successes),
        "created": outcome.successes,
        "errors": outcome.failures + errors,
        "urls_populated": sum(1 for s in outcome.successes if s.url),
    }


async def refresh_urls(db: Session, clickup: ClickUpClient, website: Website) -> Dict[str, Any]:
    if not clickup.configured:
        raise ClickUpNotConfiguredError()
    pending = [s for s in repo.list_sub_ids(db, website.id) if s.clickup_task_id and not s.url]
    if not pending:
        return {"updated": 0, "checked": 0, "updated_sub_ids": [], "errors": [],
                "message": "No Sub-IDs with missing URLs"}

    async def _one(row: SubId) -> Optional[SubId]:
        url = live_url(await clickup.get_task(row.clickup_task_id))
        if _apply_url(row, url):
            return repo.save_sub_id(db, row)
        log.info("task %s still has no URL", row.clickup_task_id)
        return None

    outcome = await fold_items(pending, _one, key=lambda s: s.clickup_task_id, on_error=db.rollback)
    updated = [s for s in outcome.successes if s is not None]
    return {"updated": len(updated), "checked": len(pending),
            "updated_sub_ids": updated, "errors": outcome.failures}


async def comment_for(clickup: ClickUpClient, row: SubId) -> ClickUpComment:
    if not row.clickup_task_id:
        raise InvalidRequestError("Sub-ID is not linked to a ClickUp task")
    task = await clickup.get_task(row.clickup_task_id)
    return build_comment(task_description(task), row.clickup_task_id, row.value)


async def post_comment(db: Session, clickup: ClickUpClient, row: SubId,
                       text: Optional[str] = None) -> Dict[str, Any]:
    if not row.clickup_task_id:
        raise InvalidRequestError("Sub-ID is not linked to a ClickUp task")
    if text:
        body: Dict[str, Any] = {"comment_text": text, "notify_all": False}
    else:
        body = (await comment_for(clickup, row)).payload()
    result = await clickup.post_comment(row.clickup_task_id, body)
    row.comment_posted = True
    repo.save_sub_id(db, row)
    log.info("comment posted to task %s for sub-id %s", row.clickup_task_id, row.value)
    return result


async def post_comments_bulk(db: Session, clickup: ClickUpClient, website: Website) -> Dict[str, Any]:
    if not clickup.configured:
        raise ClickUpNotConfiguredError()
    pending = [s for s in repo.list_sub_ids(db, website.id) if s.clickup_task_id and not s.comment_posted]

    async def _one(row: SubId) -> SubId:
        await post_comment(db, clickup, row)
        return row

    outcome = await fold_items(pending, _one, key=lambda s: s.id, key_name="sub_id",
                               on_error=db.rollback)
    return {"posted": len(outcome.successes), "checked": len(pending),
            "sub_ids": outcome.successes, "errors": outcome.failures}
