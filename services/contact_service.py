# ================================================================
# services/contact_service.py: Shared contact store & phase machine
# ================================================================
from datetime import datetime
from typing import List, Optional, Tuple
import logging

from sqlmodel import Session, select, func

from core.exceptions import NotFound
from core.timeutils import utcnow
from models.models import Contact, ContactPhase, ContactType, UserRecord
from schemas.contact_schema import ContactCreate

logger = logging.getLogger(__name__)


# ------------------------
# CREATE / READ
# ------------------------
def create_contact(session: Session, data: ContactCreate, now: Optional[datetime] = None) -> Contact:
    """Contacts are shared, created without an owner, always in RAW."""
    now = now or utcnow()
    contact = Contact(
        **data.model_dump(),
        phase=ContactPhase.RAW,
        created_at=now,
        updated_at=now,
    )
    session.add(contact)
    session.commit()
    session.refresh(contact)
    return contact


def get_contact(session: Session, contact_id: str) -> Contact:
    contact = session.get(Contact, contact_id)
    if not contact:
        raise NotFound("Contact not found", {"contact_id": contact_id})
    return contact


def list_contacts(
    session: Session,
    limit: int = 100,
    offset: int = 0,
    contact_type: Optional[ContactType] = None,
    phase: Optional[ContactPhase] = None,
) -> List[Contact]:
    statement = select(Contact)
    if contact_type:
        statement = statement.where(Contact.type == contact_type)
    if phase:
        statement = statement.where(Contact.phase == phase)
    statement = statement.order_by(Contact.created_at.desc()).offset(offset).limit(limit)
    return list(session.exec(statement).all())


# ------------------------
# PHASE TRANSITIONS
# ------------------------
def transition_phase(
    session: Session,
    contact_id: str,
    target_phase: ContactPhase,
    now: Optional[datetime] = None,
) -> Contact:
    """
    Move a contact to ``target_phase``.

    Any target is accepted; callers pick a sane one. Entering DELIVERED stamps
    ``delivered_at`` when it is unset, or when the contact arrives from another
    phase (a recycled lead being delivered again). ``delivered_at`` is never
    cleared.
    """
    now = now or utcnow()
    contact = get_contact(session, contact_id)

    if target_phase == ContactPhase.DELIVERED:
        if contact.delivered_at is None or contact.phase != ContactPhase.DELIVERED:
            contact.delivered_at = now

    contact.phase = target_phase
    contact.updated_at = now
    session.add(contact)
    session.commit()
    session.refresh(contact)
    return contact


def sample_random(session: Session, contact_type: ContactType, phase: ContactPhase) -> Optional[Contact]:
    """One contact picked uniformly among (type, phase) matches, or None when there are none."""
    statement = (
        select(Contact)
        .where(Contact.type == contact_type, Contact.phase == phase)
        .order_by(func.random())
        .limit(1)
    )
    return session.exec(statement).first()


def find_stale_delivered(session: Session, cutoff: datetime) -> List[Contact]:
    statement = select(Contact).where(
        Contact.phase == ContactPhase.DELIVERED,
        Contact.delivered_at.is_not(None),
        Contact.delivered_at < cutoff,
    )
    return list(session.exec(statement).all())


# ------------------------
# USER RECORDS
# ------------------------
def store_record(
    session: Session,
    user_id: str,
    contact_id: str,
    phase: ContactPhase = ContactPhase.DELIVERED,
    now: Optional[datetime] = None,
) -> UserRecord:
    now = now or utcnow()
    if phase == ContactPhase.DELIVERED:
        transition_phase(session, contact_id, ContactPhase.DELIVERED, now=now)
    else:
        get_contact(session, contact_id)

    record = UserRecord(
        user_id=user_id,
        contact_id=contact_id,
        phase=phase,
        delivered_at=now,
        created_at=now,
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    logger.info("📇 User %s claimed contact %s (%s)", user_id, contact_id, phase.value)
    return record


def list_user_records(session: Session, user_id: str) -> List[UserRecord]:
    statement = (
        select(UserRecord)
        .where(UserRecord.user_id == user_id)
        .order_by(UserRecord.created_at.desc())
    )
    return list(session.exec(statement).all())


def list_user_leads(session: Session, user_id: str) -> List[Tuple[UserRecord, Contact]]:
    """Records joined to their contacts, newest claim first."""
    statement = (
        select(UserRecord, Contact)
        .join(Contact, Contact.id == UserRecord.contact_id)
        .where(UserRecord.user_id == user_id)
        .order_by(UserRecord.created_at.desc())
    )
    return [(record, contact) for record, contact in session.exec(statement).all()]
