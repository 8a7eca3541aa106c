"""Portfolio service - activities, awards and reviews shown on mentor pages"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Activity, Award, Mentor, Profile, Review
from .repository import PortfolioRepository
from .schemas import ActivityCreate, ActivityUpdate, AwardCreate, AwardUpdate, ReviewCreate

logger = logging.getLogger(__name__)


class PortfolioService:
    """Service layer for mentor portfolio entries"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PortfolioRepository()

    def _get_owned(self, model, item_id: str, mentor: Mentor):
        item = self.repo.get_item(self.db, model, item_id, mentor.id)
        if not item:
            raise HTTPException(status_code=404, detail=f"{model.__name__} not found")
        return item

    # Activities
    def list_activities(self, mentor: Mentor) -> list[Activity]:
        return self.repo.list_items(self.db, Activity, mentor.id)

    def add_activity(self, data: ActivityCreate, mentor: Mentor) -> Activity:
        logger.info(f"📥 Adding activity for mentor {mentor.id}")
        return self.repo.create_item(self.db, Activity, mentor.id, **data.model_dump())

    def update_activity(self, activity_id: str, data: ActivityUpdate, mentor: Mentor) -> Activity:
        activity = self._get_owned(Activity, activity_id, mentor)
        return self.repo.update_item(self.db, activity, **data.model_dump(exclude_unset=True))

    def delete_activity(self, activity_id: str, mentor: Mentor) -> dict:
        self.repo.delete_item(self.db, self._get_owned(Activity, activity_id, mentor))
        return {"success": True}

    # Awards
    def list_awards(self, mentor: Mentor) -> list[Award]:
        return self.repo.list_items(self.db, Award, mentor.id)

    def add_award(self, data: AwardCreate, mentor: Mentor) -> Award:
        logger.info(f"📥 Adding award for mentor {mentor.id}")
        return self.repo.create_item(self.db, Award, mentor.id, **data.model_dump())

    def update_award(self, award_id: str, data: AwardUpdate, mentor: Mentor) -> Award:
        award = self._get_owned(Award, award_id, mentor)
        return self.repo.update_item(self.db, award, **data.model_dump(exclude_unset=True))

    def delete_award(self, award_id: str, mentor: Mentor) -> dict:
        self.repo.delete_item(self.db, self._get_owned(Award, award_id, mentor))
        return {"success": True}

    # Reviews
    def list_reviews(self, mentor_id: str) -> list[Review]:
        if not self.db.get(Mentor, mentor_id):
            raise HTTPException(status_code=404, detail="Mentor not found")
        return self.repo.list_reviews(self.db, mentor_id)

    def add_review(self, data: ReviewCreate, user: Profile) -> Review:
        mentor = self.db.get(Mentor, data.mentorId)
        if not mentor:
            raise HTTPException(status_code=404, detail="Mentor not found")
        if mentor.id == user.id:
            raise HTTPException(status_code=403, detail="You cannot review yourself")

        review = self.repo.create_review(
            self.db,
            mentor_id=mentor.id,
            client_id=user.id,
            name=user.name or user.email.split("@")[0],
            rating=data.rating,
            service=data.service,
            text=data.text,
        )
        self.repo.recompute_rating(self.db, mentor)
        self.db.commit()
        self.db.refresh(review)
        logger.info(f"⭐ Review {review.id} added for mentor {mentor.id}: {mentor.rating} ({mentor.review_count})")
        return review
