"""Profile repository - Database operations for profiles and mentors"""

from typing import Optional

from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import Mentor, Profile


class ProfileRepository:
    """Repository for profile and mentor database operations"""

    @staticmethod
    def update_profile(db: Session, profile: Profile, **updates) -> Profile:
        for key, value in updates.items():
            if value is not None and hasattr(profile, key):
                setattr(profile, key, value)
        db.commit()
        db.refresh(profile)
        return profile

    @staticmethod
    def get_mentor(db: Session, mentor_id: str) -> Optional[Mentor]:
        return (
            db.query(Mentor)
            .options(
                joinedload(Mentor.profile),
                selectinload(Mentor.services),
                selectinload(Mentor.activities),
                selectinload(Mentor.awards),
                selectinload(Mentor.reviews),
            )
            .filter(Mentor.id == mentor_id)
            .first()
        )

    @staticmethod
    def get_mentor_by_slug(db: Session, slug: str) -> Optional[Mentor]:
        return (
            db.query(Mentor)
            .options(
                joinedload(Mentor.profile),
                selectinload(Mentor.services),
                selectinload(Mentor.activities),
                selectinload(Mentor.awards),
                selectinload(Mentor.reviews),
            )
            .filter(Mentor.slug == slug)
            .first()
        )

    @staticmethod
    def slug_taken(db: Session, slug: str, exclude_mentor_id: str) -> bool:
        return (
            db.query(Mentor.id).filter(Mentor.slug == slug, Mentor.id != exclude_mentor_id).first()
            is not None
        )

    @staticmethod
    def search_mentors(
        db: Session,
        search: Optional[str] = None,
        university: Optional[str] = None,
        specialty: Optional[str] = None,
        page: int = 1,
        limit: int = 12,
    ) -> tuple[list[Mentor], int]:
        """Filtered, paginated mentor directory. Returns (mentors, total)"""
        query = db.query(Mentor).join(Profile, Profile.id == Mentor.id)

        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Profile.name.ilike(pattern),
                    Mentor.title.ilike(pattern),
                    Mentor.university.ilike(pattern),
                )
            )
        if university:
            query = query.filter(Mentor.university.ilike(f"%{university.strip()}%"))
        if specialty:
            # JSON array serialized as text works on both Postgres and SQLite
            query = query.filter(cast(Mentor.specialties, String).ilike(f'%"{specialty.strip()}"%'))

        total = query.with_entities(func.count(Mentor.id)).scalar() or 0
        mentors = (
            query.options(joinedload(Mentor.profile), selectinload(Mentor.services))
            .order_by(Mentor.rating.desc(), Mentor.review_count.desc(), Mentor.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return mentors, total

    @staticmethod
    def update_mentor(db: Session, mentor: Mentor, **updates) -> Mentor:
        for key, value in updates.items():
            if value is not None and hasattr(mentor, key):
                setattr(mentor, key, value)
        db.commit()
        db.refresh(mentor)
        return mentor
