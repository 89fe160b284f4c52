"""SQLModel data models.

This module defines the four collections the API serves. Every record
gets an opaque hex string id on creation. References between records
(`scholarship_id` on applications and reviews) are plain strings, not
foreign keys, so deleting a scholarship leaves its applications and
reviews in place.
"""

from datetime import date, datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


def new_id() -> str:
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """A platform user, created on first sign-in.

    Fields:
    - `email`: unique identity claim carried by the bearer token
    - `role`: `User` on creation; changed only through `update-role`
    """
    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(index=True, nullable=False, unique=True)
    name: Optional[str] = None
    image: Optional[str] = None
    role: str = Field(default="User", index=True)
    timestamp: datetime = Field(default_factory=utcnow)


class Scholarship(SQLModel, table=True):
    """A scholarship listing posted by an administrator or moderator."""
    id: str = Field(default_factory=new_id, primary_key=True)
    scholarship_name: str = Field(index=True)
    university_name: str = Field(index=True)
    university_image: Optional[str] = None
    university_country: Optional[str] = None
    university_city: Optional[str] = None
    university_world_rank: Optional[int] = None
    subject_category: Optional[str] = None
    scholarship_category: Optional[str] = None
    degree: Optional[str] = None
    tuition_fees: Optional[float] = None
    application_fees: float = Field(default=0, index=True)
    service_charge: Optional[float] = None
    stipend: Optional[str] = None
    application_deadline: Optional[date] = None
    scholarship_description: Optional[str] = None
    post_date: datetime = Field(default_factory=utcnow, index=True)
    posted_user_email: Optional[str] = Field(default=None, index=True)


class Application(SQLModel, table=True):
    """An applicant's submission for one scholarship.

    Scholarship details are copied in at apply time so listings keep
    rendering after the scholarship itself is edited or removed.
    """
    id: str = Field(default_factory=new_id, primary_key=True)
    scholarship_id: str = Field(index=True)
    scholarship_name: Optional[str] = None
    university_name: Optional[str] = None
    scholarship_category: Optional[str] = None
    subject_category: Optional[str] = None
    application_fees: Optional[float] = None
    service_charge: Optional[float] = None
    application_deadline: Optional[date] = None
    user_name: Optional[str] = None
    user_email: str = Field(index=True)
    phone: Optional[str] = None
    photo: Optional[str] = None
    address: Optional[str] = None
    gender: Optional[str] = None
    applying_degree: Optional[str] = None
    ssc_result: Optional[str] = None
    hsc_result: Optional[str] = None
    study_gap: Optional[str] = None
    applied_date: datetime = Field(default_factory=utcnow)
    status: str = Field(default="Pending", index=True)
    feedback: Optional[str] = None


class Review(SQLModel, table=True):
    """A rating and comment left by one reviewer on one scholarship."""
    __table_args__ = (UniqueConstraint("reviewer_email", "scholarship_id", name="uq_review_reviewer_scholarship"),)

    id: str = Field(default_factory=new_id, primary_key=True)
    scholarship_id: str = Field(index=True)
    scholarship_name: Optional[str] = None
    university_name: Optional[str] = None
    reviewer_name: Optional[str] = None
    reviewer_email: str = Field(index=True)
    reviewer_image: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    review_date: datetime = Field(default_factory=utcnow)
