"""
Validation usage is never stored as a counter. It is always derived by summing
``total`` over the user's append-only validation history rows.
"""
from typing import List

from sqlmodel import Session, select, func

from models.models import ValidationHistory, ValidationType


def record_validation(
    session: Session,
    user_id: str,
    validation_type: ValidationType,
    file_path: str,
    total: int,
) -> ValidationHistory:
    entry = ValidationHistory(
        user_id=user_id,
        type=validation_type,
        file_path=file_path,
        total=total,
    )
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry


def total_validations_used(session: Session, user_id: str) -> int:
    statement = select(func.coalesce(func.sum(ValidationHistory.total), 0)).where(
        ValidationHistory.user_id == user_id
    )
    return int(session.exec(statement).one())


def list_history(session: Session, user_id: str) -> List[ValidationHistory]:
    statement = (
        select(ValidationHistory)
        .where(ValidationHistory.user_id == user_id)
        .order_by(ValidationHistory.created_at.desc())
    )
    return list(session.exec(statement).all())
