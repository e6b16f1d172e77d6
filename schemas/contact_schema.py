# contact_schema.py
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional
from datetime import datetime

from models.models import ContactType, ContactPhase


# ---------------------------
# Contact
# ---------------------------
class ContactCreate(BaseModel):
    type: ContactType
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    company: Optional[str] = Field(default=None, max_length=200)
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    zip_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = Field(default=None, max_length=255)
    source: Optional[str] = Field(default=None, max_length=100)


class ContactRead(BaseModel):
    id: str
    type: ContactType
    phase: ContactPhase
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    website: Optional[str] = None
    source: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    delivered_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PhaseUpdate(BaseModel):
    phase: ContactPhase


# ---------------------------
# User records / leads
# ---------------------------
class UserRecordCreate(BaseModel):
    contact_id: str
    phase: ContactPhase = ContactPhase.DELIVERED


class UserRecordRead(BaseModel):
    id: str
    user_id: str
    contact_id: str
    phase: ContactPhase
    delivered_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserLeadRead(ContactRead):
    """A contact as seen by the user who claimed it."""
    record_id: str
    claimed_at: datetime
