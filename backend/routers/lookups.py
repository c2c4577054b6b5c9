"""
Lookups router - groups and areas

Groups and areas are maintained by administrators; dispatch only reads
them (area -> owning group drives incident targeting).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from database import get_db
from errors import ConflictOrInternalError, NotFoundError
from models import Area, Group, Responder
from schemas_incidents import AreaCreate, GroupCreate

router = APIRouter()


def _commit(db: Session, what: str):
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictOrInternalError(f"{what} already exists", conflict=True)


# ============================================================================
# GROUPS
# ============================================================================

@router.get("/groups")
async def list_groups(db: Session = Depends(get_db)):
    """List groups with member counts"""
    rows = (
        db.query(Group, func.count(Responder.id))
        .outerjoin(Responder, Responder.group_id == Group.id)
        .group_by(Group.id)
        .order_by(Group.name)
        .all()
    )
    return [
        {"id": g.id, "name": g.name, "memberCount": count}
        for g, count in rows
    ]


@router.post("/groups", status_code=201)
async def create_group(data: GroupCreate, db: Session = Depends(get_db)):
    group = Group(name=data.name.strip())
    if data.id:
        group.id = data.id
    db.add(group)
    _commit(db, "Group")
    return {"id": group.id, "name": group.name}


# ============================================================================
# AREAS
# ============================================================================

@router.get("/areas")
async def list_areas(db: Session = Depends(get_db)):
    areas = db.query(Area).order_by(Area.name).all()
    return [{"id": a.id, "name": a.name, "groupId": a.group_id} for a in areas]


@router.post("/areas", status_code=201)
async def create_area(data: AreaCreate, db: Session = Depends(get_db)):
    if data.group_id and not db.get(Group, data.group_id):
        raise NotFoundError("Group not found")

    area = Area(name=data.name.strip(), group_id=data.group_id)
    if data.id:
        area.id = data.id
    db.add(area)
    _commit(db, "Area")
    return {"id": area.id, "name": area.name, "groupId": area.group_id}
