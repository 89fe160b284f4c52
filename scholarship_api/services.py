"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and apply the few rules the API has: users are created once per email,
a reviewer reviews a scholarship at most once, updates only touch
whitelisted fields, and payment amounts are converted to the smallest
currency unit before reaching the provider.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import models, repositories, schemas
from .config import settings
from .payments import PaymentGateway

logger = logging.getLogger(__name__)

REVIEW_ALREADY_GIVEN = "Review Already Given!"


class ConflictError(Exception):
    """A write would duplicate a record that must be unique."""


class BadRequestError(ValueError):
    """The request is well-formed but cannot be acted on."""


def _update(repo, record_id: str, changes: dict) -> Tuple[int, int]:
    """Apply `changes` to one record; return `(matched, modified)` counts."""
    record = repo.get(record_id)
    if record is None:
        return 0, 0
    return 1, repo.apply_changes(record, changes)


class UserService:
    """User profiles: idempotent sign-in save, profile and role updates."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def save_user(self, email: str, profile: schemas.UserIn) -> models.User:
        """Return the user for `email`, creating it on first sign-in.

        An existing record is returned unchanged, whatever the payload
        says. New users always start with the `User` role. If a
        concurrent request inserts the same email first, the unique index
        rejects this insert and the winner's record is returned instead.
        """
        existing = self.user_repo.get_by_email(email)
        if existing:
            return existing
        user = models.User(email=email, name=profile.name, image=profile.image, role="User")
        try:
            created = self.user_repo.add(user)
        except IntegrityError:
            self.session.rollback()
            logger.info("concurrent first sign-in for %s; returning stored user", email)
            return self.user_repo.get_by_email(email)
        logger.info("created user %s", created.id)
        return created

    def get_user(self, email: str) -> Optional[models.User]:
        return self.user_repo.get_by_email(email)

    def get_role(self, email: str) -> Optional[str]:
        user = self.user_repo.get_by_email(email)
        return user.role if user else None

    def list_users(self, exclude_email: str, role: Optional[str] = None) -> List[models.User]:
        return self.user_repo.list_except(exclude_email, role=role)

    def update_profile(self, email: str, changes: schemas.UserUpdate) -> Tuple[int, int]:
        user = self.user_repo.get_by_email(email)
        if user is None:
            return 0, 0
        return 1, self.user_repo.apply_changes(user, changes.model_dump(exclude_unset=True))

    def update_role(self, email: str, role: str) -> Tuple[int, int]:
        user = self.user_repo.get_by_email(email)
        if user is None:
            return 0, 0
        modified = self.user_repo.apply_changes(user, {"role": role})
        if modified:
            logger.info("user %s role changed to %s", user.id, role)
        return 1, modified

    def delete_user(self, user_id: str) -> int:
        return self.user_repo.delete(user_id)


class ScholarshipService:
    """Scholarship listings: create, browse, rank, edit and remove."""
    TOP_LIMIT = 6

    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ScholarshipRepository(session)

    def add(self, data: schemas.ScholarshipIn, poster_email: Optional[str] = None) -> models.Scholarship:
        """Create a listing; the poster defaults to the caller's email."""
        fields = data.model_dump(exclude_none=True)
        fields.setdefault("posted_user_email", poster_email)
        scholarship = self.repo.add(models.Scholarship(**fields))
        logger.info("scholarship %s posted by %s", scholarship.id, scholarship.posted_user_email)
        return scholarship

    def search(self, search: Optional[str] = None, page: int = 0, limit: int = 0) -> List[models.Scholarship]:
        return self.repo.search(search=search, page=page, limit=limit)

    def count(self, search: Optional[str] = None) -> int:
        return self.repo.count(search=search)

    def top(self) -> List[models.Scholarship]:
        return self.repo.top(limit=self.TOP_LIMIT)

    def get(self, scholarship_id: str) -> Optional[models.Scholarship]:
        return self.repo.get(scholarship_id)

    def update(self, scholarship_id: str, changes: schemas.ScholarshipUpdate) -> Tuple[int, int]:
        return _update(self.repo, scholarship_id, changes.model_dump(exclude_unset=True))

    def delete(self, scholarship_id: str) -> int:
        deleted = self.repo.delete(scholarship_id)
        if deleted:
            logger.info("scholarship %s deleted", scholarship_id)
        return deleted


class ApplicationService:
    """Applications: submit, track, edit, and administrator review."""
    # Copied from the scholarship when the client leaves them out.
    SCHOLARSHIP_FIELDS = (
        "scholarship_name",
        "university_name",
        "scholarship_category",
        "subject_category",
        "application_fees",
        "service_charge",
        "application_deadline",
    )

    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ApplicationRepository(session)
        self.scholarship_repo = repositories.ScholarshipRepository(session)

    def apply(self, data: schemas.ApplicationIn, applicant_email: Optional[str] = None) -> models.Application:
        """Record a new application with status `Pending`.

        The scholarship id is not required to exist; when it does, any
        scholarship details missing from the payload are filled in.
        """
        fields = data.model_dump(exclude_none=True)
        fields.setdefault("user_email", applicant_email)
        if not fields.get("user_email"):
            raise BadRequestError("applicant email is required")
        scholarship = self.scholarship_repo.get(data.scholarship_id)
        if scholarship is not None:
            for name in self.SCHOLARSHIP_FIELDS:
                if fields.get(name) is None and getattr(scholarship, name) is not None:
                    fields[name] = getattr(scholarship, name)
        fields["status"] = schemas.ApplicationStatus.PENDING.value
        application = self.repo.add(models.Application(**fields))
        logger.info("application %s submitted for scholarship %s", application.id, application.scholarship_id)
        return application

    def list_for_user(self, email: str) -> List[models.Application]:
        return self.repo.list_by_user(email)

    def list_all(self, order_by: Optional[str] = None) -> List[models.Application]:
        return self.repo.list_all(order_by=order_by)

    def get(self, application_id: str) -> Optional[models.Application]:
        return self.repo.get(application_id)

    def update(self, application_id: str, changes: schemas.ApplicationUpdate) -> Tuple[int, int]:
        return _update(self.repo, application_id, changes.model_dump(exclude_unset=True))

    def change_status(self, application_id: str, status: schemas.ApplicationStatus) -> Tuple[int, int]:
        matched, modified = _update(self.repo, application_id, {"status": status.value})
        if modified:
            logger.info("application %s status -> %s", application_id, status.value)
        return matched, modified

    def add_feedback(self, application_id: str, feedback: str) -> Tuple[int, int]:
        return _update(self.repo, application_id, {"feedback": feedback})

    def delete(self, application_id: str) -> int:
        return self.repo.delete(application_id)


class ReviewService:
    """Reviews: one per reviewer and scholarship, editable by the author."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ReviewRepository(session)
        self.scholarship_repo = repositories.ScholarshipRepository(session)

    def add_review(self, scholarship_id: str, data: schemas.ReviewIn, reviewer_email: Optional[str] = None) -> models.Review:
        """Store a review, refusing a second one from the same reviewer.

        The reviewer is the payload's `reviewerEmail`, falling back to the
        caller's token email. Raises `ConflictError` on a duplicate; the
        unique constraint turns a lost race into the same error.
        """
        fields = data.model_dump(exclude_none=True)
        fields.setdefault("reviewer_email", reviewer_email)
        if not fields.get("reviewer_email"):
            raise BadRequestError("reviewer email is required")
        if self.repo.find_by_reviewer(fields["reviewer_email"], scholarship_id):
            raise ConflictError(REVIEW_ALREADY_GIVEN)
        scholarship = self.scholarship_repo.get(scholarship_id)
        if scholarship is not None:
            fields.setdefault("scholarship_name", scholarship.scholarship_name)
            fields.setdefault("university_name", scholarship.university_name)
        try:
            review = self.repo.add(models.Review(scholarship_id=scholarship_id, **fields))
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError(REVIEW_ALREADY_GIVEN) from exc
        logger.info("review %s added for scholarship %s", review.id, scholarship_id)
        return review

    def list_all(self) -> List[models.Review]:
        return self.repo.list_all()

    def list_by_reviewer(self, email: str) -> List[models.Review]:
        return self.repo.list_by_reviewer(email)

    def list_for_scholarship(self, scholarship_id: str) -> List[models.Review]:
        return self.repo.list_for_scholarship(scholarship_id)

    def get(self, review_id: str) -> Optional[models.Review]:
        return self.repo.get(review_id)

    def update(self, review_id: str, changes: schemas.ReviewUpdate) -> Tuple[int, int]:
        return _update(self.repo, review_id, changes.model_dump(exclude_unset=True))

    def delete(self, review_id: str) -> int:
        return self.repo.delete(review_id)


class PaymentService:
    """Create provider payment intents for application fees."""
    def __init__(self, gateway: PaymentGateway, currency: Optional[str] = None):
        self.gateway = gateway
        self.currency = currency or settings.PAYMENT_CURRENCY

    @staticmethod
    def to_minor_units(fee) -> int:
        """Convert a fee in currency units to the smallest unit (cents)."""
        amount = Decimal(str(fee)) * 100
        return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def create_payment_intent(self, fee) -> str:
        """Return the provider's client secret for a `fee` payment."""
        amount = self.to_minor_units(fee)
        if amount <= 0:
            raise BadRequestError("fee must be positive")
        return self.gateway.create_intent(amount, self.currency)
