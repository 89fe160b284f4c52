"""Repository classes encapsulating database operations.

Each repository is small and focused on a single collection (users,
scholarships, applications, reviews). Repositories return SQLModel
objects and perform commits/refreshes where appropriate. Lookups that
find nothing return `None` or an empty list; updates and deletes report
how many rows they touched.
"""

from typing import List, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from . import models


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class _Repository:
    """Shared get/add/update/delete by primary key."""
    model = None

    def __init__(self, session: Session):
        self.session = session

    def get(self, record_id: str):
        """Return the record with `record_id` or `None`."""
        return self.session.get(self.model, record_id)

    def add(self, record):
        """Persist a new record and return the managed instance."""
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def apply_changes(self, record, changes: dict) -> int:
        """Write `changes` onto `record`; return 1 if any value differed."""
        modified = 0
        for field, value in changes.items():
            if getattr(record, field) != value:
                setattr(record, field, value)
                modified = 1
        if modified:
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        return modified

    def delete(self, record_id: str) -> int:
        """Delete by id and return the number of rows removed (0 or 1)."""
        record = self.get(record_id)
        if record is None:
            return 0
        self.session.delete(record)
        self.session.commit()
        return 1


class UserRepository(_Repository):
    """CRUD operations for `User` records."""
    model = models.User

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def list_except(self, email: str, role: Optional[str] = None) -> List[models.User]:
        """All users other than `email`, optionally only those with `role`."""
        stmt = select(models.User).where(models.User.email != email)
        if role:
            stmt = stmt.where(models.User.role == role)
        stmt = stmt.order_by(models.User.timestamp.desc())
        return self.session.exec(stmt).all()


class ScholarshipRepository(_Repository):
    """Queries over `Scholarship` listings."""
    model = models.Scholarship

    def _search_clause(self, search: Optional[str]):
        if not search:
            return None
        pattern = _like_pattern(search)
        return or_(
            models.Scholarship.scholarship_name.ilike(pattern, escape="\\"),
            models.Scholarship.degree.ilike(pattern, escape="\\"),
            models.Scholarship.university_name.ilike(pattern, escape="\\"),
        )

    def search(self, search: Optional[str] = None, page: int = 0, limit: int = 0) -> List[models.Scholarship]:
        """Return one offset-paginated window of listings matching `search`.

        Rows are ordered newest first with `id` as a tie-break so windows
        over unchanged data never overlap. `limit == 0` returns everything
        after the offset.
        """
        stmt = select(models.Scholarship)
        clause = self._search_clause(search)
        if clause is not None:
            stmt = stmt.where(clause)
        stmt = stmt.order_by(models.Scholarship.post_date.desc(), models.Scholarship.id)
        if limit > 0:
            stmt = stmt.offset(page * limit).limit(limit)
        return self.session.exec(stmt).all()

    def count(self, search: Optional[str] = None) -> int:
        """Number of listings matching `search` (all listings when empty)."""
        stmt = select(func.count()).select_from(models.Scholarship)
        clause = self._search_clause(search)
        if clause is not None:
            stmt = stmt.where(clause)
        return self.session.exec(stmt).one()

    def top(self, limit: int = 6) -> List[models.Scholarship]:
        """Cheapest listings first; equal fees show the newest post first."""
        stmt = (
            select(models.Scholarship)
            .order_by(models.Scholarship.application_fees.asc(), models.Scholarship.post_date.desc())
            .limit(limit)
        )
        return self.session.exec(stmt).all()


class ApplicationRepository(_Repository):
    """Queries over scholarship `Application` records."""
    model = models.Application

    def list_by_user(self, email: str) -> List[models.Application]:
        """An applicant's submissions, most recent first."""
        stmt = (
            select(models.Application)
            .where(models.Application.user_email == email)
            .order_by(models.Application.applied_date.desc())
        )
        return self.session.exec(stmt).all()

    def list_all(self, order_by: Optional[str] = None) -> List[models.Application]:
        """All applications.

        `order_by="applicationDeadline"` puts the soonest deadline first
        (undated last); anything else sorts by applied date, newest first.
        """
        stmt = select(models.Application)
        if order_by == "applicationDeadline":
            stmt = stmt.order_by(
                models.Application.application_deadline.asc().nulls_last(),
                models.Application.applied_date.desc(),
            )
        else:
            stmt = stmt.order_by(models.Application.applied_date.desc())
        return self.session.exec(stmt).all()


class ReviewRepository(_Repository):
    """Queries over scholarship `Review` records."""
    model = models.Review

    def find_by_reviewer(self, reviewer_email: str, scholarship_id: str) -> Optional[models.Review]:
        """Return the reviewer's review of `scholarship_id`, if one exists."""
        stmt = select(models.Review).where(
            models.Review.reviewer_email == reviewer_email,
            models.Review.scholarship_id == scholarship_id,
        )
        return self.session.exec(stmt).first()

    def list_all(self) -> List[models.Review]:
        stmt = select(models.Review).order_by(models.Review.review_date.desc())
        return self.session.exec(stmt).all()

    def list_by_reviewer(self, reviewer_email: str) -> List[models.Review]:
        stmt = (
            select(models.Review)
            .where(models.Review.reviewer_email == reviewer_email)
            .order_by(models.Review.review_date.desc())
        )
        return self.session.exec(stmt).all()

    def list_for_scholarship(self, scholarship_id: str) -> List[models.Review]:
        stmt = (
            select(models.Review)
            .where(models.Review.scholarship_id == scholarship_id)
            .order_by(models.Review.review_date.desc())
        )
        return self.session.exec(stmt).all()
