import time
from typing import List
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from subtrack.db import repo
from subtrack.db.repo import get_db
from subtrack.models.schemas import (
    BulkSubIdRequest,
    DuplicateSubId,
    SubIdCreate,
    SubIdRead,
    SubIdUpdate,
    WebsiteCreate,
    WebsiteRead,
)
from subtrack.services import subids
from subtrack.services.export import export_filename, subids_csv

router = APIRouter(prefix="/api", tags=["websites"])


@router.get("/websites", response_model=List[WebsiteRead])
def list_websites(db: Session = Depends(get_db)):
    return [
        WebsiteRead(id=w.id, name=w.name, format_pattern=w.format_pattern, sub_id_count=n)
        for w, n in repo.list_websites(db)
    ]


@router.post("/websites", response_model=WebsiteRead)
def create_website(req: WebsiteCreate, db: Session = Depends(get_db)):
    w = repo.create_website(db, req.name, req.format_pattern)
    return WebsiteRead(id=w.id, name=w.name, format_pattern=w.format_pattern, sub_id_count=0)


@router.delete("/websites/{website_id}")
def delete_website(website_id: str, db: Session = Depends(get_db)):
    subids.delete_website(db, repo.get_website(db, website_id))
    return {"success": True}


@router.get("/websites/{website_id}/subids", response_model=List[SubIdRead])
def list_website_sub_ids(website_id: str, db: Session = Depends(get_db)):
    repo.get_website(db, website_id)
    return repo.list_sub_ids(db, website_id)


@router.post("/websites/{website_id}/subids", response_model=SubIdRead)
def create_sub_id(website_id: str, req: SubIdCreate, db: Session = Depends(get_db)):
    website = repo.get_website(db, website_id)
    return subids.create_sub_id(db, website, value=req.value, url=req.url,
                                clickup_task_id=req.clickup_task_id)


@router.post("/websites/{website_id}/subids/bulk", response_model=List[SubIdRead])
def bulk_create_sub_ids(website_id: str, req: BulkSubIdRequest, db: Session = Depends(get_db)):
    website = repo.get_website(db, website_id)
    return subids.bulk_create_with_urls(db, website, [i.model_dump() for i in req.sub_ids])


@router.get("/websites/{website_id}/subids/export.csv")
def export_sub_ids(website_id: str, detailed: bool = False, db: Session = Depends(get_db)):
    website = repo.get_website(db, website_id)
    body = subids_csv(repo.list_sub_ids(db, website_id), detailed=detailed)
    filename = export_filename(website.name, int(time.time() * 1000))
    return Response(content=body, media_type="text/csv",
                    headers={"Content-Disposition": f'attachment; filename="{filename}"'})


@router.get("/subids", response_model=List[SubIdRead])
def list_all_sub_ids(db: Session = Depends(get_db)):
    return repo.list_all_sub_ids(db)


@router.get("/subids/duplicates", response_model=List[DuplicateSubId])
def duplicate_sub_ids(db: Session = Depends(get_db)):
    return [DuplicateSubId(value=v, website_ids=ids) for v, ids in repo.find_duplicate_values(db).items()]


@router.patch("/subids/{sub_id}", response_model=SubIdRead)
def update_sub_id(sub_id: str, req: SubIdUpdate, db: Session = Depends(get_db)):
    row = repo.get_sub_id(db, sub_id)
    return subids.update_sub_id(db, row, **req.model_dump(exclude_unset=True))


@router.delete("/subids/{sub_id}")
def delete_sub_id(sub_id: str, db: Session = Depends(get_db)):
    subids.delete_sub_id(db, repo.get_sub_id(db, sub_id))
    return {"success": True}
