"""Profile router - FastAPI endpoints for profiles and the mentor directory"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_mentor, get_current_user
from ...database import get_db
from ...models import Mentor, Profile
from .schemas import MentorDetail, MentorListResponse, MentorUpdate, ProfileResponse, ProfileUpdate
from .service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profiles"])


def get_profile_service(db: Session = Depends(get_db)) -> ProfileService:
    """Dependency injection for ProfileService"""
    return ProfileService(db)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(current_user: Profile = Depends(get_current_user)):
    return current_user


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdate,
    current_user: Profile = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return service.update_profile(data, current_user)


@router.get("/mentors", response_model=MentorListResponse)
async def list_mentors(
    search: Optional[str] = Query(None),
    university: Optional[str] = Query(None),
    specialty: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1),
    service: ProfileService = Depends(get_profile_service),
):
    """Public mentor directory"""
    return service.list_mentors(search, university, specialty, page, limit)


@router.get("/mentors/me", response_model=MentorDetail)
async def get_my_mentor_profile(
    mentor: Mentor = Depends(get_current_mentor),
    service: ProfileService = Depends(get_profile_service),
):
    return service.get_mentor_detail(mentor.id)


@router.put("/mentors/me", response_model=MentorDetail)
async def update_my_mentor_profile(
    data: MentorUpdate,
    mentor: Mentor = Depends(get_current_mentor),
    service: ProfileService = Depends(get_profile_service),
):
    service.update_mentor(data, mentor)
    return service.get_mentor_detail(mentor.id)


@router.get("/mentors/{id_or_slug}", response_model=MentorDetail)
async def get_mentor(id_or_slug: str, service: ProfileService = Depends(get_profile_service)):
    """Public mentor page: profile, services, activities, awards and reviews"""
    return service.get_mentor_detail(id_or_slug)
