# validation_schema.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Annotated, List, Literal, Optional, Union
from datetime import datetime
from enum import Enum

from models.models import ValidationType


class ValidationStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    UNKNOWN = "unknown"


# ---------------------------
# Provider outcomes (tagged union)
# ---------------------------
class ValidLookup(BaseModel):
    kind: Literal["valid"] = "valid"
    country_code: Optional[str] = None
    formatted_number: Optional[str] = None
    national_format: Optional[str] = None


class InvalidLookup(BaseModel):
    kind: Literal["invalid"] = "invalid"
    country_code: Optional[str] = None


class ProviderErrorLookup(BaseModel):
    kind: Literal["provider_error"] = "provider_error"
    error: str


LookupOutcome = Annotated[
    Union[ValidLookup, InvalidLookup, ProviderErrorLookup],
    Field(discriminator="kind"),
]


# ---------------------------
# Results
# ---------------------------
class PhoneValidationResult(BaseModel):
    phone_number: str
    status: ValidationStatus
    is_valid: bool = False
    is_reachable: bool = False
    country_code: Optional[str] = None
    formatted_number: Optional[str] = None
    national_format: Optional[str] = None
    error: Optional[str] = None
    validated_at: datetime


class ValidationBatchResponse(BaseModel):
    total: int
    valid: int
    invalid: int
    unknown: int
    results: List[PhoneValidationResult]
    file_path: str
    processed_at: datetime


# ---------------------------
# Requests
# ---------------------------
class SingleValidationRequest(BaseModel):
    phone_number: str = Field(..., min_length=1)


class BulkValidationRequest(BaseModel):
    phone_numbers: List[str] = Field(..., min_length=1)


# ---------------------------
# History
# ---------------------------
class ValidationHistoryRead(BaseModel):
    id: str
    user_id: str
    type: ValidationType
    file_path: str
    total: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
