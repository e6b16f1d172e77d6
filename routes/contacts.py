from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from core.database import get_session
from core.exceptions import NotFound
from core.security import get_current_user
from models.models import ContactPhase, ContactType, User
from schemas.contact_schema import (
    ContactCreate,
    ContactRead,
    PhaseUpdate,
    UserLeadRead,
    UserRecordCreate,
    UserRecordRead,
)
from services import contact_service

router = APIRouter(tags=["Contacts"])


# ==========================================================
# 🎲 Random lead
# ==========================================================
@router.get("/random", response_model=ContactRead)
def get_random_contact(
    type: ContactType = Query(..., description="B2B or B2C"),
    phase: ContactPhase = Query(ContactPhase.CLEANED),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    contact = contact_service.sample_random(session, type, phase)
    if contact is None:
        raise NotFound(f"No {type.value} contacts available in phase {phase.value}")
    return contact


# ==========================================================
# 📇 Contacts
# ==========================================================
@router.post("/", response_model=ContactRead, status_code=status.HTTP_201_CREATED)
def create_contact(
    payload: ContactCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return contact_service.create_contact(session, payload)


@router.get("/", response_model=List[ContactRead])
def list_contacts(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    type: Optional[ContactType] = None,
    phase: Optional[ContactPhase] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return contact_service.list_contacts(session, limit=limit, offset=offset, contact_type=type, phase=phase)


@router.put("/{contact_id}/phase", response_model=ContactRead)
def update_contact_phase(
    contact_id: str,
    payload: PhaseUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return contact_service.transition_phase(session, contact_id, payload.phase)


# ==========================================================
# 🗂️ User records / my leads
# ==========================================================
@router.post("/records", response_model=UserRecordRead, status_code=status.HTTP_201_CREATED)
def store_user_record(
    payload: UserRecordCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return contact_service.store_record(session, current_user.id, payload.contact_id, phase=payload.phase)


@router.get("/records/my", response_model=List[UserRecordRead])
def my_records(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return contact_service.list_user_records(session, current_user.id)


@router.get("/my-leads", response_model=List[UserLeadRead])
def my_leads(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return [
        UserLeadRead(
            **ContactRead.model_validate(contact).model_dump(),
            record_id=record.id,
            claimed_at=record.created_at,
        )
        for record, contact in contact_service.list_user_leads(session, current_user.id)
    ]
