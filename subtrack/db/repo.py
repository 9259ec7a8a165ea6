from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from subtrack.db.session import SessionLocal
from subtrack.exceptions import NotFoundError
from subtrack.models.db_models import SubId, Website, now_ms


@contextmanager
def get_session() -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency; repository functions commit their own work."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# Websites

def list_websites(db: Session) -> List[Tuple[Website, int]]:
    counts = (
        select(SubId.website_id, func.count(SubId.id).label("n"))
        .group_by(SubId.website_id)
        .subquery()
    )
    rows = db.execute(
        select(Website, func.coalesce(counts.c.n, 0))
        .outerjoin(counts, counts.c.website_id == Website.id)
        .order_by(Website.name)
    ).all()
    return [(w, int(n)) for w, n in rows]


def get_website(db: Session, website_id: str) -> Website:
    website = db.get(Website, website_id)
    if website is None:
        raise NotFoundError("Website not found")
    return website


def find_website_by_name(db: Session, name: str) -> Optional[Website]:
    return db.scalars(
        select(Website).where(func.lower(Website.name) == name.strip().lower())
    ).first()


def create_website(db: Session, name: str, format_pattern: str) -> Website:
    website = Website(name=name, format_pattern=format_pattern)
    db.add(website)
    db.commit()
    return website


def website_has_immutable_sub_ids(db: Session, website_id: str) -> bool:
    stmt = select(SubId.id).where(SubId.website_id == website_id, SubId.is_immutable.is_(True)).limit(1)
    return db.scalars(stmt).first() is not None


def delete_website(db: Session, website: Website) -> None:
    db.delete(website)
    db.commit()


# Sub-IDs

def list_sub_ids(db: Session, website_id: str) -> List[SubId]:
    stmt = select(SubId).where(SubId.website_id == website_id).order_by(SubId.timestamp.desc())
    return list(db.scalars(stmt))


def list_all_sub_ids(db: Session) -> List[SubId]:
    return list(db.scalars(select(SubId).order_by(SubId.timestamp.desc())))


def get_sub_id(db: Session, sub_id: str) -> SubId:
    row = db.get(SubId, sub_id)
    if row is None:
        raise NotFoundError("Sub-ID not found")
    return row


def find_sub_id_by_task(db: Session, task_id: str) -> Optional[SubId]:
    return db.scalars(select(SubId).where(SubId.clickup_task_id == task_id)).first()


def create_sub_id(db: Session, website_id: str, value: str, url: Optional[str] = None,
                  clickup_task_id: Optional[str] = None, is_immutable: bool = False) -> SubId:
    row = SubId(website_id=website_id, value=value, url=url,
                clickup_task_id=clickup_task_id, is_immutable=is_immutable,
                timestamp=now_ms())
    db.add(row)
    db.commit()
    return row


def create_sub_ids_bulk(db: Session, website_id: str, items: Iterable[Dict]) -> List[SubId]:
    rows = [SubId(website_id=website_id, timestamp=now_ms(), **item) for item in items]
    if not rows:
        return []
    db.add_all(rows)
    db.commit()
    return rows


def save_sub_id(db: Session, row: SubId) -> SubId:
    db.add(row)
    db.commit()
    return row


def delete_sub_id(db: Session, row: SubId) -> None:
    db.delete(row)
    db.commit()


def find_duplicate_values(db: Session) -> Dict[str, List[str]]:
    """Sub-ID values used more than once, mapped to the website ids holding them."""
    dupes = (
        select(SubId.value)
        .group_by(SubId.value)
        .having(func.count(SubId.id) > 1)
        .subquery()
    )
    rows = db.execute(
        select(SubId.value, SubId.website_id).where(SubId.value.in_(select(dupes.c.value)))
    ).all()
    out: Dict[str, List[str]] = {}
    for value, website_id in rows:
        out.setdefault(value, [])
        if website_id not in out[value]:
            out[value].append(website_id)
    return out
