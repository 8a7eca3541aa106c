"""Portfolio repository - Database operations for activities, awards and reviews"""

from typing import Optional, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Activity, Award, Mentor, Review

PortfolioItem = TypeVar("PortfolioItem", Activity, Award)


class PortfolioRepository:
    """Repository for mentor portfolio entries"""

    @staticmethod
    def list_items(db: Session, model: type[PortfolioItem], mentor_id: str) -> list[PortfolioItem]:
        return db.query(model).filter(model.mentor_id == mentor_id).order_by(model.created_at.desc()).all()

    @staticmethod
    def get_item(
        db: Session, model: type[PortfolioItem], item_id: str, mentor_id: str
    ) -> Optional[PortfolioItem]:
        return db.query(model).filter(model.id == item_id, model.mentor_id == mentor_id).first()

    @staticmethod
    def create_item(db: Session, model: type[PortfolioItem], mentor_id: str, **data) -> PortfolioItem:
        item = model(mentor_id=mentor_id, **data)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def update_item(db: Session, item: PortfolioItem, **updates) -> PortfolioItem:
        for key, value in updates.items():
            if value is not None and hasattr(item, key):
                setattr(item, key, value)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def delete_item(db: Session, item) -> None:
        db.delete(item)
        db.commit()

    # Reviews
    @staticmethod
    def list_reviews(db: Session, mentor_id: str) -> list[Review]:
        return (
            db.query(Review)
            .filter(Review.mentor_id == mentor_id)
            .order_by(Review.created_at.desc())
            .all()
        )

    @staticmethod
    def create_review(db: Session, **data) -> Review:
        review = Review(**data)
        db.add(review)
        db.flush()
        return review

    @staticmethod
    def recompute_rating(db: Session, mentor: Mentor) -> None:
        """Refresh the denormalized rating and review_count on the mentor row"""
        avg_rating, count = (
            db.query(func.avg(Review.rating), func.count(Review.id))
            .filter(Review.mentor_id == mentor.id)
            .one()
        )
        mentor.rating = round(float(avg_rating), 1) if avg_rating is not None else 0
        mentor.review_count = count or 0
