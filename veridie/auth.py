import logging
from typing import Any

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET
from .database import get_db
from .models import Mentor, Profile

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

CONSULTANT_ROLE = "consultant"
CLIENT_ROLE = "client"


def verify_supabase_token(token: str) -> dict[str, Any]:
    """
    Verify a Supabase access token.

    Supabase signs session JWTs with the project's JWT secret (HS256) and
    sets aud="authenticated" for signed-in users.
    """
    if not SUPABASE_JWT_SECRET:
        logger.error("❌ SUPABASE_JWT_SECRET not configured")
        raise HTTPException(status_code=500, detail="Authentication not configured")

    try:
        claims = jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        logger.info("ℹ️ Expired Supabase token presented")
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ Supabase token rejected: {e}")
        raise HTTPException(status_code=401, detail="Invalid authentication token") from e

    if not claims.get("sub"):
        logger.error(f"❌ Token missing sub claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return claims


def profile_from_claims(db: Session, claims: dict[str, Any]) -> Profile:
    """Create the profile (and mentor row for consultants) on first sight of a user"""
    metadata = claims.get("user_metadata") or {}
    email = claims.get("email") or ""
    role = metadata.get("role") if metadata.get("role") in (CLIENT_ROLE, CONSULTANT_ROLE) else CLIENT_ROLE

    logger.info(f"🆕 Creating profile for Supabase user {claims['sub']}")
    profile = Profile(
        id=claims["sub"],
        email=email,
        name=metadata.get("name") or metadata.get("full_name") or email.split("@")[0],
        role=role,
        avatar=metadata.get("avatar_url"),
    )
    db.add(profile)
    if role == CONSULTANT_ROLE:
        db.add(Mentor(id=profile.id))

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # Same email registered under a different Supabase user id
        logger.error(f"❌ Email {email} already belongs to another profile")
        raise HTTPException(
            status_code=409,
            detail="This email is already registered. Please sign in with your existing account.",
        ) from e

    db.refresh(profile)
    return profile


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """Get current user profile from the Supabase session token"""
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    claims = verify_supabase_token(token)

    profile = db.get(Profile, claims["sub"])
    if not profile:
        profile = profile_from_claims(db, claims)

    logger.debug(f"✅ User authenticated: {profile.email}")
    return profile


async def get_current_mentor(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Mentor:
    """Mentor row of the authenticated user; 404 for plain clients"""
    mentor = db.get(Mentor, current_user.id)
    if not mentor:
        logger.warning(f"⚠️ User {current_user.id} has no mentor profile")
        raise HTTPException(status_code=404, detail="Mentor profile not found")
    return mentor
