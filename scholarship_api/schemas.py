"""Pydantic request/response schemas used by the API.

Schemas keep the JSON shapes stable: clients speak camelCase
(`scholarshipName`, `applicationFees`, ...) while models use
snake_case. Request schemas double as update whitelists: a key that is
not declared on the schema is dropped during validation and never
reaches the database.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApplicationStatus(str, Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


# --- auth ---------------------------------------------------------------

class TokenIn(BaseModel):
    """Identity claims to sign; extra keys are carried into the token."""
    model_config = ConfigDict(extra="allow")
    email: str


class TokenOut(BaseModel):
    token: str


# --- write results ------------------------------------------------------

class InsertResult(ApiModel):
    acknowledged: bool = True
    inserted_id: str


class UpdateResult(ApiModel):
    acknowledged: bool = True
    matched_count: int
    modified_count: int


class DeleteResult(ApiModel):
    acknowledged: bool = True
    deleted_count: int


class CountOut(BaseModel):
    count: int


# --- users --------------------------------------------------------------

class UserIn(ApiModel):
    """Profile fields accepted on first sign-in. The role is always `User`."""
    name: Optional[str] = None
    image: Optional[str] = None


class UserUpdate(ApiModel):
    """Self-service profile update; `role` is deliberately absent."""
    name: Optional[str] = None
    image: Optional[str] = None


class RoleUpdate(ApiModel):
    role: str = Field(..., min_length=1)


class RoleOut(BaseModel):
    role: Optional[str] = None


class UserOut(ApiModel):
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    role: str
    timestamp: datetime


# --- scholarships -------------------------------------------------------

class ScholarshipFields(ApiModel):
    university_image: Optional[str] = None
    university_country: Optional[str] = None
    university_city: Optional[str] = None
    university_world_rank: Optional[int] = None
    subject_category: Optional[str] = None
    scholarship_category: Optional[str] = None
    degree: Optional[str] = None
    tuition_fees: Optional[float] = None
    service_charge: Optional[float] = None
    stipend: Optional[str] = None
    application_deadline: Optional[date] = None
    scholarship_description: Optional[str] = None


class ScholarshipIn(ScholarshipFields):
    scholarship_name: str = Field(..., min_length=1)
    university_name: str = Field(..., min_length=1)
    application_fees: float = Field(0, ge=0)
    post_date: Optional[datetime] = None
    posted_user_email: Optional[str] = None


class ScholarshipUpdate(ScholarshipFields):
    """Fields an editor may change; id, post date and owner are fixed."""
    scholarship_name: Optional[str] = Field(None, min_length=1)
    university_name: Optional[str] = Field(None, min_length=1)
    application_fees: Optional[float] = Field(None, ge=0)

    @field_validator("scholarship_name", "university_name", "application_fees")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class ScholarshipOut(ScholarshipFields):
    id: str
    scholarship_name: str
    university_name: str
    application_fees: float
    post_date: datetime
    posted_user_email: Optional[str] = None


# --- applications -------------------------------------------------------

class ApplicantFields(ApiModel):
    phone: Optional[str] = None
    photo: Optional[str] = None
    address: Optional[str] = None
    gender: Optional[str] = None
    applying_degree: Optional[str] = None
    ssc_result: Optional[str] = None
    hsc_result: Optional[str] = None
    study_gap: Optional[str] = None


class ApplicationIn(ApplicantFields):
    scholarship_id: str = Field(..., min_length=1)
    scholarship_name: Optional[str] = None
    university_name: Optional[str] = None
    scholarship_category: Optional[str] = None
    subject_category: Optional[str] = None
    application_fees: Optional[float] = None
    service_charge: Optional[float] = None
    application_deadline: Optional[date] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    applied_date: Optional[datetime] = None


class ApplicationUpdate(ApplicantFields):
    """Applicant-editable fields; status and feedback are not among them."""


class StatusUpdate(ApiModel):
    status: ApplicationStatus


class FeedbackIn(ApiModel):
    feedback: str


class ApplicationOut(ApplicantFields):
    id: str
    scholarship_id: str
    scholarship_name: Optional[str] = None
    university_name: Optional[str] = None
    scholarship_category: Optional[str] = None
    subject_category: Optional[str] = None
    application_fees: Optional[float] = None
    service_charge: Optional[float] = None
    application_deadline: Optional[date] = None
    user_name: Optional[str] = None
    user_email: str
    applied_date: datetime
    status: str
    feedback: Optional[str] = None


# --- reviews ------------------------------------------------------------

class ReviewIn(ApiModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    reviewer_name: Optional[str] = None
    reviewer_email: Optional[str] = None
    reviewer_image: Optional[str] = None
    scholarship_name: Optional[str] = None
    university_name: Optional[str] = None
    review_date: Optional[datetime] = None


class ReviewUpdate(ApiModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = None
    review_date: Optional[datetime] = None

    @field_validator("rating")
    @classmethod
    def _rating_not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class ReviewOut(ApiModel):
    id: str
    scholarship_id: str
    scholarship_name: Optional[str] = None
    university_name: Optional[str] = None
    reviewer_name: Optional[str] = None
    reviewer_email: str
    reviewer_image: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    review_date: datetime


# --- payments -----------------------------------------------------------

class PaymentIntentIn(ApiModel):
    fee: Decimal = Field(..., gt=0)


class PaymentIntentOut(ApiModel):
    client_secret: str
