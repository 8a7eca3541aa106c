"""
Calendly OAuth token lifecycle

A mentor's Calendly connection moves through these states:

    disconnected -> connected -> expiring (< 6h left) -> expired
                                      \\-> refreshed (new token stored)

Refreshes are opportunistic: a request that needs a token refreshes it when
it is within REFRESH_BUFFER of expiry, and the dashboard schedules a
background refresh once a token enters the EXPIRING_WINDOW. Refreshes for
one mentor are serialized inside the process and the expiry is re-read
under the lock, so a second caller sees the first caller's new token
instead of spending the refresh token again.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

import httpx
from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..models import Mentor
from ..security_utils import decrypt_token, encrypt_token
from .calendly_service import CalendlyService

logger = logging.getLogger(__name__)

REFRESH_BUFFER = timedelta(minutes=5)
EXPIRING_WINDOW = timedelta(hours=6)
DEFAULT_TOKEN_LIFETIME_SECONDS = 7200


class CalendlyTokenState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    EXPIRING = "expiring"
    EXPIRED = "expired"


@dataclass
class TokenRefreshResult:
    success: bool
    status: str  # refreshed, still_valid, not_connected, failed
    access_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    error: Optional[str] = None


# Locks disappear once no coroutine holds a reference to them
_refresh_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _get_refresh_lock(mentor_id: str) -> asyncio.Lock:
    lock = _refresh_locks.get(mentor_id)
    if lock is None:
        lock = asyncio.Lock()
        _refresh_locks[mentor_id] = lock
    return lock


def get_token_state(mentor: Optional[Mentor], now: Optional[datetime] = None) -> CalendlyTokenState:
    """Classify a mentor's stored Calendly token"""
    if mentor is None or not mentor.calendly_access_token:
        return CalendlyTokenState.DISCONNECTED

    expires_at = mentor.calendly_token_expires_at
    if expires_at is None:
        return CalendlyTokenState.CONNECTED

    now = now or datetime.utcnow()
    if now >= expires_at:
        return CalendlyTokenState.EXPIRED
    if expires_at - now < EXPIRING_WINDOW:
        return CalendlyTokenState.EXPIRING
    return CalendlyTokenState.CONNECTED


def store_tokens(mentor: Mentor, token_data: dict[str, Any], now: Optional[datetime] = None) -> datetime:
    """Write a token endpoint response onto the mentor row (caller commits)"""
    now = now or datetime.utcnow()
    expires_at = now + timedelta(seconds=int(token_data.get("expires_in") or DEFAULT_TOKEN_LIFETIME_SECONDS))

    mentor.calendly_access_token = encrypt_token(token_data["access_token"])
    # Calendly rotates refresh tokens, but keep the old one if none came back
    if token_data.get("refresh_token"):
        mentor.calendly_refresh_token = encrypt_token(token_data["refresh_token"])
    mentor.calendly_token_expires_at = expires_at
    mentor.updated_at = now
    return expires_at


def clear_tokens(mentor: Mentor) -> None:
    """Forget everything we know about the mentor's Calendly account (caller commits)"""
    mentor.calendly_access_token = None
    mentor.calendly_refresh_token = None
    mentor.calendly_token_expires_at = None
    mentor.calendly_user_uri = None
    mentor.calendly_username = None
    mentor.calendly_event_type_uri = None
    mentor.calendly_webhook_subscriptions = None


async def refresh_calendly_token(
    db: Session,
    mentor_id: str,
    calendly: CalendlyService,
    window: timedelta = REFRESH_BUFFER,
) -> TokenRefreshResult:
    """
    Refresh a mentor's Calendly access token if it expires within `window`.

    Failures never raise: the stored tokens are left untouched and the
    result carries the error.
    """
    async with _get_refresh_lock(mentor_id):
        mentor = db.get(Mentor, mentor_id)
        if mentor is None:
            return TokenRefreshResult(False, "failed", error="Mentor not found")
        # Another session may have refreshed while we waited for the lock
        db.refresh(mentor)

        refresh_token = decrypt_token(mentor.calendly_refresh_token)
        if not refresh_token:
            logger.info(f"ℹ️ Mentor {mentor_id} has no Calendly refresh token")
            return TokenRefreshResult(False, "not_connected", error="No refresh token available")

        now = datetime.utcnow()
        expires_at = mentor.calendly_token_expires_at
        access_token = decrypt_token(mentor.calendly_access_token)
        if access_token and expires_at and expires_at - now >= window:
            logger.debug(f"✅ Calendly token still valid for mentor {mentor_id} until {expires_at}")
            return TokenRefreshResult(True, "still_valid", access_token=access_token, expires_at=expires_at)

        if not calendly.is_configured():
            logger.error("❌ Calendly OAuth credentials not configured")
            return TokenRefreshResult(False, "failed", error="Calendly OAuth credentials not configured")

        logger.info(f"🔄 Refreshing Calendly token for mentor {mentor_id} (expires {expires_at})")
        try:
            token_data = await calendly.refresh_access_token(refresh_token)
        except httpx.HTTPStatusError as e:
            logger.error(f"❌ Calendly refresh rejected for mentor {mentor_id}: {e.response.status_code}")
            return TokenRefreshResult(
                False, "failed", error=f"Calendly refresh failed with status {e.response.status_code}"
            )
        except httpx.HTTPError as e:
            logger.error(f"❌ Calendly refresh request failed for mentor {mentor_id}: {e}")
            return TokenRefreshResult(False, "failed", error=f"Calendly refresh request failed: {e}")

        new_expires_at = store_tokens(mentor, token_data, now=now)
        db.commit()
        logger.info(f"✅ Calendly token refreshed for mentor {mentor_id}, expires {new_expires_at}")
        return TokenRefreshResult(
            True, "refreshed", access_token=token_data["access_token"], expires_at=new_expires_at
        )


async def ensure_fresh_access_token(db: Session, mentor: Mentor, calendly: CalendlyService) -> str:
    """Return a usable access token or raise the HTTP error the caller should see"""
    if get_token_state(mentor) == CalendlyTokenState.DISCONNECTED:
        raise HTTPException(status_code=400, detail="Calendly not connected")

    result = await refresh_calendly_token(db, mentor.id, calendly)
    if not result.success or not result.access_token:
        raise HTTPException(
            status_code=401,
            detail="Calendly token expired. Please reconnect your Calendly account.",
        )
    return result.access_token


async def refresh_token_in_background(mentor_id: str, calendly: CalendlyService) -> None:
    """Background task body: uses its own session, the request's is closed by now"""
    db = SessionLocal()
    try:
        result = await refresh_calendly_token(db, mentor_id, calendly, window=EXPIRING_WINDOW)
        if result.success:
            logger.info(f"✅ Background Calendly refresh for mentor {mentor_id}: {result.status}")
        else:
            logger.warning(f"⚠️ Background Calendly refresh for mentor {mentor_id} failed: {result.error}")
    except Exception:
        logger.exception(f"❌ Background Calendly refresh crashed for mentor {mentor_id}")
    finally:
        db.close()


def schedule_refresh_if_needed(
    mentor: Mentor, background_tasks: BackgroundTasks, calendly: CalendlyService
) -> bool:
    """Queue a refresh when the token is expiring or expired; returns whether one was queued"""
    state = get_token_state(mentor)
    if state not in (CalendlyTokenState.EXPIRING, CalendlyTokenState.EXPIRED):
        return False
    if not mentor.calendly_refresh_token:
        return False

    logger.info(f"⏰ Calendly token for mentor {mentor.id} is {state.value}, scheduling refresh")
    background_tasks.add_task(refresh_token_in_background, mentor.id, calendly)
    return True
