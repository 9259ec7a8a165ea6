from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from subtrack.db import repo
from subtrack.db.repo import get_db
from subtrack.models.schemas import (
    AffiliateLink,
    AffiliateLinks,
    BulkCommentResult,
    ClickUpBulkImportRequest,
    ClickUpBulkImportResult,
    ClickUpLinkRequest,
    CommentPosted,
    CommentPreview,
    CommentRequest,
    RefreshUrlsResult,
    SubIdRead,
)
from subtrack.services import subids
from subtrack.services.clickup import ClickUpClient, get_clickup_client, task_description
from subtrack.services.top_picks import extract_affiliate_links
from subtrack.services.tracking_params import find_tracking_param

router = APIRouter(prefix="/api", tags=["clickup"])


@router.patch("/subids/{sub_id}/clickup", response_model=SubIdRead)
async def link_task(sub_id: str, req: ClickUpLinkRequest, db: Session = Depends(get_db),
                    clickup: ClickUpClient = Depends(get_clickup_client)):
    row = repo.get_sub_id(db, sub_id)
    return await subids.link_task(db, clickup, row, req.clickup_task_id)


@router.delete("/subids/{sub_id}/clickup", response_model=SubIdRead)
def unlink_task(sub_id: str, db: Session = Depends(get_db)):
    return subids.unlink_task(db, repo.get_sub_id(db, sub_id))


@router.get("/clickup/task/{task_id}")
async def get_task(task_id: str, clickup: ClickUpClient = Depends(get_clickup_client)):
    return await clickup.get_task(task_id)


@router.get("/clickup/task/{task_id}/affiliate-links", response_model=AffiliateLinks)
async def affiliate_links(task_id: str, clickup: ClickUpClient = Depends(get_clickup_client)):
    task = await clickup.get_task(task_id)
    links = []
    for url in extract_affiliate_links(task_description(task)):
        found = find_tracking_param(url)
        links.append(AffiliateLink(url=url, param=found.name if found else None,
                                   value=found.value if found else None))
    return AffiliateLinks(links=links)


@router.post("/websites/{website_id}/clickup/bulk", response_model=ClickUpBulkImportResult)
async def bulk_import(website_id: str, req: ClickUpBulkImportRequest, db: Session = Depends(get_db),
                      clickup: ClickUpClient = Depends(get_clickup_client)):
    website = repo.get_website(db, website_id)
    return await subids.import_tasks(db, clickup, website, req.task_ids)


@router.post("/websites/{website_id}/clickup/refresh-urls", response_model=RefreshUrlsResult)
async def refresh_urls(website_id: str, db: Session = Depends(get_db),
                       clickup: ClickUpClient = Depends(get_clickup_client)):
    website = repo.get_website(db, website_id)
    return await subids.refresh_urls(db, clickup, website)


@router.get("/subids/{sub_id}/clickup/comment-preview", response_model=CommentPreview)
async def comment_preview(sub_id: str, db: Session = Depends(get_db),
                          clickup: ClickUpClient = Depends(get_clickup_client)):
    comment = await subids.comment_for(clickup, repo.get_sub_id(db, sub_id))
    return CommentPreview(text=comment.text, comment=comment.segments)


@router.post("/subids/{sub_id}/clickup/comment", response_model=CommentPosted)
async def post_comment(sub_id: str, req: Optional[CommentRequest] = None, db: Session = Depends(get_db),
                       clickup: ClickUpClient = Depends(get_clickup_client)):
    row = repo.get_sub_id(db, sub_id)
    result = await subids.post_comment(db, clickup, row, text=req.comment if req else None)
    return CommentPosted(success=True, comment=result)


@router.post("/websites/{website_id}/clickup/comments", response_model=BulkCommentResult)
async def post_comments(website_id: str, db: Session = Depends(get_db),
                        clickup: ClickUpClient = Depends(get_clickup_client)):
    website = repo.get_website(db, website_id)
    return await subids.post_comments_bulk(db, clickup, website)
