import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..auth import CLIENT_ROLE, CONSULTANT_ROLE, get_current_user, profile_from_claims
from ..database import get_db
from ..models import Mentor, Profile
from ..services.supabase_service import (
    SupabaseAuthError,
    SupabaseNotConfiguredError,
    SupabaseService,
    get_supabase_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=255)
    role: Literal["client", "consultant"] = CLIENT_ROLE


class UserOut(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str
    avatar: Optional[str] = None

    class Config:
        from_attributes = True


class SessionOut(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None


class AuthResponse(BaseModel):
    user: UserOut
    session: Optional[SessionOut] = None


def _sync_profile(db: Session, user: dict) -> Profile:
    """Local profile for a Supabase user, created on first sign-in"""
    profile = db.get(Profile, user["id"])
    if profile:
        return profile
    return profile_from_claims(
        db,
        {"sub": user["id"], "email": user["email"], "user_metadata": user.get("user_metadata") or {}},
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    supabase: SupabaseService = Depends(get_supabase_service),
):
    """Password sign-in through Supabase Auth"""
    try:
        result = await run_in_threadpool(supabase.sign_in, data.email, data.password)
    except SupabaseNotConfiguredError as e:
        logger.error(f"❌ Login unavailable: {e}")
        raise HTTPException(status_code=500, detail="Authentication not configured") from e
    except SupabaseAuthError as e:
        raise HTTPException(status_code=401, detail="Invalid email or password") from e

    profile = _sync_profile(db, result["user"])
    logger.info(f"✅ User signed in: {profile.email}")
    return AuthResponse(user=UserOut.model_validate(profile), session=result["session"])


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(
    data: SignupRequest,
    db: Session = Depends(get_db),
    supabase: SupabaseService = Depends(get_supabase_service),
):
    """Create the Supabase user, the profile, and a mentor row for consultants"""
    metadata = {"name": data.name, "role": data.role}
    try:
        result = await run_in_threadpool(supabase.sign_up, data.email, data.password, metadata)
    except SupabaseNotConfiguredError as e:
        logger.error(f"❌ Signup unavailable: {e}")
        raise HTTPException(status_code=500, detail="Authentication not configured") from e
    except SupabaseAuthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    user = result["user"]
    user["user_metadata"] = {**metadata, **(user.get("user_metadata") or {})}
    profile = _sync_profile(db, user)

    if data.role == CONSULTANT_ROLE and not db.get(Mentor, profile.id):
        db.add(Mentor(id=profile.id))
        db.commit()

    logger.info(f"🆕 User signed up: {profile.email} ({profile.role})")
    return AuthResponse(user=UserOut.model_validate(profile), session=result["session"])


@router.get("/me", response_model=UserOut)
async def get_me(current_user: Profile = Depends(get_current_user)):
    return current_user
