"""Profile service - Business logic for profiles and the mentor directory"""

import logging
import math
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Mentor, Profile
from ...services.calendly_tokens import CalendlyTokenState, get_token_state
from ..catalog.schemas import ServiceResponse
from ..portfolio.schemas import ActivityResponse, AwardResponse, ReviewResponse
from .repository import ProfileRepository
from .schemas import MentorDetail, MentorListResponse, MentorSummary, MentorUpdate, ProfileUpdate

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


def mentor_summary(mentor: Mentor) -> MentorSummary:
    prices = [s.price for s in mentor.services if s.price is not None]
    return MentorSummary(
        id=mentor.id,
        name=mentor.profile.name if mentor.profile else None,
        avatar=mentor.profile.avatar if mentor.profile else None,
        title=mentor.title,
        university=mentor.university,
        slug=mentor.slug,
        rating=mentor.rating or 0,
        reviewCount=mentor.review_count or 0,
        specialties=mentor.specialties or [],
        startingPrice=min(prices) if prices else None,
        calendlyConnected=get_token_state(mentor) != CalendlyTokenState.DISCONNECTED,
    )


class ProfileService:
    """Service layer for profile and mentor business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProfileRepository()

    def update_profile(self, data: ProfileUpdate, user: Profile) -> Profile:
        logger.info(f"📝 Updating profile {user.id}")
        return self.repo.update_profile(self.db, user, name=data.name, avatar=data.avatar)

    def list_mentors(
        self,
        search: Optional[str],
        university: Optional[str],
        specialty: Optional[str],
        page: int,
        limit: int,
    ) -> MentorListResponse:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        page = max(1, page)
        mentors, total = self.repo.search_mentors(self.db, search, university, specialty, page, limit)
        return MentorListResponse(
            mentors=[mentor_summary(m) for m in mentors],
            total=total,
            page=page,
            pages=math.ceil(total / limit) if total else 0,
        )

    def get_mentor(self, id_or_slug: str) -> Mentor:
        mentor = self.repo.get_mentor(self.db, id_or_slug) or self.repo.get_mentor_by_slug(
            self.db, id_or_slug
        )
        if not mentor:
            raise HTTPException(status_code=404, detail="Mentor not found")
        return mentor

    def get_mentor_detail(self, id_or_slug: str) -> MentorDetail:
        mentor = self.get_mentor(id_or_slug)
        summary = mentor_summary(mentor)
        return MentorDetail(
            **summary.model_dump(),
            bio=mentor.bio,
            languages=mentor.languages or [],
            acceptsPayments=bool(
                mentor.stripe_connect_account_id and mentor.stripe_connect_charges_enabled
            ),
            services=[ServiceResponse.model_validate(s) for s in mentor.services],
            activities=[ActivityResponse.model_validate(a) for a in mentor.activities],
            awards=[AwardResponse.model_validate(a) for a in mentor.awards],
            reviews=[ReviewResponse.model_validate(r) for r in mentor.reviews],
        )

    def update_mentor(self, data: MentorUpdate, mentor: Mentor) -> Mentor:
        if data.slug and self.repo.slug_taken(self.db, data.slug, mentor.id):
            raise HTTPException(status_code=409, detail="Slug already in use")

        updates = {
            "title": data.title,
            "university": data.university,
            "bio": data.bio,
            "slug": data.slug,
            "specialties": data.specialties,
            "languages": data.languages,
            "calendly_event_type_uri": data.calendlyEventTypeUri,
        }
        logger.info(f"📝 Updating mentor {mentor.id}")
        return self.repo.update_mentor(self.db, mentor, **updates)
