"""
Responders router - member registry and login
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional
import logging

from database import get_db
from errors import ConflictOrInternalError, NotFoundError, UnauthenticatedError
from jwt_auth import create_access_token, hash_password, set_auth_cookie, verify_password
from models import Group, Responder
from schemas_incidents import LoginRequest, ResponderCreate

logger = logging.getLogger(__name__)
router = APIRouter()


def _responder_dict(person: Responder) -> dict:
    return {
        "id": person.id,
        "name": person.name,
        "email": person.email,
        "role": person.role,
        "groupId": person.group_id,
        "isActive": person.is_active,
        "isRegistered": person.is_registered,
    }


@router.get("")
async def list_responders(
    active_only: bool = True,
    group_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List responders, optionally only one group's members"""
    query = db.query(Responder)

    if active_only:
        query = query.filter(Responder.is_active.is_(True))
    if group_id:
        query = query.filter(Responder.group_id == group_id)

    return [_responder_dict(p) for p in query.order_by(Responder.name).all()]


@router.get("/{id}")
async def get_responder(id: str, db: Session = Depends(get_db)):
    """Get single responder"""
    person = db.get(Responder, id)

    if not person:
        raise NotFoundError("Responder not found")

    return _responder_dict(person)


@router.post("", status_code=201)
async def create_responder(
    data: ResponderCreate,
    db: Session = Depends(get_db)
):
    """Register a new responder"""
    if data.group_id and not db.get(Group, data.group_id):
        raise NotFoundError("Group not found")

    person = Responder(
        name=data.name.strip(),
        email=data.email.strip().lower() if data.email else None,
        role=data.role.value,
        group_id=data.group_id,
        password_hash=hash_password(data.password) if data.password else None,
    )

    db.add(person)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictOrInternalError("Email already registered", conflict=True)
    db.refresh(person)

    logger.info(f"Registered responder {person.id} ({person.name}) group={person.group_id}")
    return _responder_dict(person)


# =============================================================================
# AUTHENTICATION
# =============================================================================

@router.post("/auth/login")
async def login(
    data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Verify responder credentials and issue an access token"""
    person = db.query(Responder).filter(Responder.email == data.email.strip().lower()).first()

    # Same message for every failure so accounts can't be probed
    if not person or not person.is_active or not verify_password(data.password, person.password_hash):
        logger.info(f"Failed login for {data.email}")
        raise UnauthenticatedError("Invalid credentials")

    token = create_access_token(person.id, person.role)
    set_auth_cookie(response, token)

    return {
        "token": token,
        "responder": _responder_dict(person),
    }
