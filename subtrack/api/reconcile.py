from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from subtrack.db.repo import get_db
from subtrack.models.schemas import (
    CreateFromTaskRequest,
    ReconcileRequest,
    ReconcileResponse,
    SubIdRead,
)
from subtrack.services import reconcile
from subtrack.services.clickup import ClickUpClient, get_clickup_client

router = APIRouter(prefix="/api", tags=["reconcile"])


@router.post("/reconcile-tasks", response_model=ReconcileResponse)
async def reconcile_tasks(req: ReconcileRequest, db: Session = Depends(get_db),
                          clickup: ClickUpClient = Depends(get_clickup_client)):
    return {"results": await reconcile.reconcile_tasks(db, clickup, req.task_ids)}


@router.post("/create-subid-from-task", response_model=SubIdRead)
async def create_sub_id_from_task(req: CreateFromTaskRequest, db: Session = Depends(get_db),
                                  clickup: ClickUpClient = Depends(get_clickup_client)):
    return await reconcile.create_sub_id_from_task(db, clickup, req.task_id, req.website_id)
