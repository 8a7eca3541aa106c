"""Portfolio router - FastAPI endpoints for activities, awards and reviews"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_mentor, get_current_user
from ...database import get_db
from ...models import Mentor, Profile
from .schemas import (
    ActivityCreate,
    ActivityResponse,
    ActivityUpdate,
    AwardCreate,
    AwardResponse,
    AwardUpdate,
    ReviewCreate,
    ReviewResponse,
)
from .service import PortfolioService

router = APIRouter(tags=["Portfolio"])


def get_portfolio_service(db: Session = Depends(get_db)) -> PortfolioService:
    """Dependency injection for PortfolioService"""
    return PortfolioService(db)


# ============================================================================
# ACTIVITIES
# ============================================================================


@router.get("/activities", response_model=list[ActivityResponse])
async def list_activities(
    mentor: Mentor = Depends(get_current_mentor),
    service: PortfolioService = Depends(get_portfolio_service),
):
    return service.list_activities(mentor)


@router.post("/activities", response_model=ActivityResponse, status_code=201)
@router.post("/activities/add", response_model=ActivityResponse, status_code=201)
async def add_activity(
    data: ActivityCreate,
    mentor: Mentor = Depends(get_current_mentor),
    service: PortfolioService = Depends(get_portfolio_service),
):
    return service.add_activity(data, mentor)


@router.put("/activities/{activity_id}", response_model=ActivityResponse)
async def update_activity(
    activity_id: str,
    data: ActivityUpdate,
    mentor: Mentor = Depends(get_current_mentor),
    service: PortfolioService = Depends(get_portfolio_service),
):
    return service.update_activity(activity_id, data, mentor)


@router.delete("/activities/{activity_id}")
async def delete_activity(
    activity_id: str,
    mentor: Mentor = Depends(get_current_mentor),
    service: PortfolioService = Depends(get_portfolio_service),
):
    return service.delete_activity(activity_id, mentor)


# ============================================================================
# AWARDS
# ============================================================================


@router.get("/awards", response_model=list[AwardResponse])
async def list_awards(
    mentor: Mentor = Depends(get_current_mentor),
    service: PortfolioService = Depends(get_portfolio_service),
):
    return service.list_awards(mentor)


@router.post("/awards", response_model=AwardResponse, status_code=201)
async def add_award(
    data: AwardCreate,
    mentor: Mentor = Depends(get_current_mentor),
    service: PortfolioService = Depends(get_portfolio_service),
):
    return service.add_award(data, mentor)


@router.put("/awards/{award_id}", response_model=AwardResponse)
async def update_award(
    award_id: str,
    data: AwardUpdate,
    mentor: Mentor = Depends(get_current_mentor),
    service: PortfolioService = Depends(get_portfolio_service),
):
    return service.update_award(award_id, data, mentor)


@router.delete("/awards/{award_id}")
async def delete_award(
    award_id: str,
    mentor: Mentor = Depends(get_current_mentor),
    service: PortfolioService = Depends(get_portfolio_service),
):
    return service.delete_award(award_id, mentor)


# ============================================================================
# REVIEWS
# ============================================================================


@router.get("/mentors/{mentor_id}/reviews", response_model=list[ReviewResponse])
async def list_reviews(mentor_id: str, service: PortfolioService = Depends(get_portfolio_service)):
    return service.list_reviews(mentor_id)


@router.post("/reviews", response_model=ReviewResponse, status_code=201)
async def add_review(
    data: ReviewCreate,
    current_user: Profile = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    return service.add_review(data, current_user)
