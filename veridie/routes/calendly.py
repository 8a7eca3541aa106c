import logging
from datetime import date as date_type
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..auth import get_current_mentor, get_current_user
from ..config import API_BASE_URL, BASE_URL, CALENDLY_WEBHOOK_SECRET
from ..database import get_db
from ..models import Mentor, Profile, Service
from ..security_utils import decrypt_token, generate_timed_token, verify_timed_token
from ..services.calendly_service import (
    CalendlyService,
    format_slot_time,
    get_calendly_service,
    parse_calendly_time,
)
from ..services.calendly_tokens import (
    CalendlyTokenState,
    clear_tokens,
    ensure_fresh_access_token,
    get_token_state,
    refresh_calendly_token,
    store_tokens,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendly", tags=["Calendly"])

WEEKEND_TIMES = ["10:00 AM", "11:00 AM", "2:00 PM"]
WEEKDAY_TIMES = ["9:00 AM", "10:00 AM", "11:00 AM", "1:00 PM", "2:00 PM", "3:00 PM", "4:00 PM"]


class RefreshTokenRequest(BaseModel):
    userId: Optional[str] = None


class AvailableTimesRequest(BaseModel):
    mentorId: str = Field(..., min_length=1)
    date: str
    serviceId: str = Field(..., min_length=1)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        try:
            datetime.strptime(v, "%Y-%m-%d")
        except ValueError as e:
            raise ValueError("Date must be in YYYY-MM-DD format") from e
        return v


class CalendlyStatusResponse(BaseModel):
    state: str
    connected: bool
    username: Optional[str] = None
    userUri: Optional[str] = None
    expiresAt: Optional[datetime] = None


def _dashboard_redirect(**params) -> RedirectResponse:
    return RedirectResponse(url=f"{BASE_URL}/dashboard/calendly?{urlencode(params)}", status_code=302)


def _authorization_url(mentor: Mentor, calendly: CalendlyService) -> str:
    state = generate_timed_token({"user_id": mentor.id})
    return calendly.get_authorization_url(state)


def simulated_times(day: str) -> list[str]:
    """Plausible slots for mentors without a usable Calendly setup"""
    weekday = datetime.strptime(day, "%Y-%m-%d").weekday()
    return list(WEEKEND_TIMES if weekday >= 5 else WEEKDAY_TIMES)


@router.get("/authorize")
async def authorize(
    mentor: Mentor = Depends(get_current_mentor),
    calendly: CalendlyService = Depends(get_calendly_service),
):
    """Send the mentor to Calendly's consent screen"""
    if not calendly.is_configured():
        logger.error("❌ CALENDLY_CLIENT_ID not configured")
        return _dashboard_redirect(error="Calendly integration is not configured")
    return RedirectResponse(url=_authorization_url(mentor, calendly), status_code=302)


@router.get("/oauth-url")
async def get_oauth_url(
    mentor: Mentor = Depends(get_current_mentor),
    calendly: CalendlyService = Depends(get_calendly_service),
):
    if not calendly.is_configured():
        raise HTTPException(status_code=500, detail="Calendly integration is not configured")
    return {"url": _authorization_url(mentor, calendly)}


@router.get("/callback")
async def oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
    calendly: CalendlyService = Depends(get_calendly_service),
):
    """OAuth redirect target; always answers with a redirect to the dashboard"""
    if error:
        logger.warning(f"⚠️ Calendly OAuth returned error: {error}")
        return _dashboard_redirect(error=error)
    if not code or not state:
        return _dashboard_redirect(error="Missing code or state")

    payload = verify_timed_token(state)
    if not payload or not payload.get("user_id"):
        return _dashboard_redirect(error="Invalid or expired state")

    mentor = db.get(Mentor, payload["user_id"])
    if not mentor:
        logger.warning(f"⚠️ Calendly callback for unknown mentor {payload['user_id']}")
        return _dashboard_redirect(error="Mentor not found")

    try:
        token_data = await calendly.exchange_code_for_token(code)
        user_info = (await calendly.get_user_info(token_data["access_token"]))["resource"]
    except (httpx.HTTPError, KeyError) as e:
        logger.error(f"❌ Calendly token exchange failed for mentor {mentor.id}: {e}")
        return _dashboard_redirect(error="Failed to connect Calendly")

    subscriptions = []
    organization = user_info.get("current_organization")
    if organization:
        try:
            subscription = await calendly.create_webhook_subscription(
                token_data["access_token"],
                url=f"{API_BASE_URL}/api/webhooks/calendly",
                organization_uri=organization,
                user_uri=user_info["uri"],
                signing_key=CALENDLY_WEBHOOK_SECRET,
            )
            subscriptions.append(subscription["resource"]["uri"])
            logger.info(f"🔔 Calendly webhook subscribed for mentor {mentor.id}")
        except (httpx.HTTPError, KeyError) as e:
            # 409 when the subscription already exists for this user
            logger.warning(f"⚠️ Calendly webhook subscription failed for mentor {mentor.id}: {e}")

    store_tokens(mentor, token_data)
    mentor.calendly_user_uri = user_info["uri"]
    scheduling_url = user_info.get("scheduling_url") or ""
    mentor.calendly_username = scheduling_url.rstrip("/").rsplit("/", 1)[-1] or None
    if subscriptions:
        mentor.calendly_webhook_subscriptions = subscriptions
    db.commit()

    logger.info(f"✅ Calendly connected for mentor {mentor.id} as {mentor.calendly_username}")
    return _dashboard_redirect(success="true")


@router.post("/refresh-token")
async def refresh_token(
    data: Optional[RefreshTokenRequest] = None,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    calendly: CalendlyService = Depends(get_calendly_service),
):
    if data and data.userId and data.userId != current_user.id:
        logger.warning(f"⚠️ User {current_user.id} tried to refresh Calendly token of {data.userId}")
        raise HTTPException(status_code=403, detail="Cannot refresh another user's token")

    result = await refresh_calendly_token(db, current_user.id, calendly)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error or "Failed to refresh token")
    return {"success": True, "status": result.status, "expiresAt": result.expires_at}


@router.post("/disconnect")
async def disconnect(
    mentor: Mentor = Depends(get_current_mentor),
    db: Session = Depends(get_db),
    calendly: CalendlyService = Depends(get_calendly_service),
):
    access_token = decrypt_token(mentor.calendly_access_token)
    if access_token:
        for webhook_uri in mentor.calendly_webhook_subscriptions or []:
            try:
                await calendly.delete_webhook_subscription(access_token, webhook_uri)
            except httpx.HTTPError as e:
                logger.warning(f"⚠️ Could not delete Calendly webhook {webhook_uri}: {e}")

    clear_tokens(mentor)
    db.commit()
    logger.info(f"🔌 Disconnected Calendly for mentor {mentor.id}")
    return {"success": True}


@router.get("/status", response_model=CalendlyStatusResponse)
async def get_status(mentor: Mentor = Depends(get_current_mentor)):
    state = get_token_state(mentor)
    return CalendlyStatusResponse(
        state=state.value,
        connected=state != CalendlyTokenState.DISCONNECTED,
        username=mentor.calendly_username,
        userUri=mentor.calendly_user_uri,
        expiresAt=mentor.calendly_token_expires_at,
    )


@router.get("/event-types")
async def list_event_types(
    mentor: Mentor = Depends(get_current_mentor),
    db: Session = Depends(get_db),
    calendly: CalendlyService = Depends(get_calendly_service),
):
    access_token = await ensure_fresh_access_token(db, mentor, calendly)
    try:
        data = await calendly.list_event_types(access_token, mentor.calendly_user_uri)
    except httpx.HTTPStatusError as e:
        logger.error(f"❌ Calendly event types rejected for mentor {mentor.id}: {e.response.status_code}")
        if e.response.status_code == 401:
            raise HTTPException(
                status_code=401,
                detail="Calendly authorization expired. Please reconnect your Calendly account.",
            ) from e
        raise HTTPException(status_code=502, detail="Failed to fetch Calendly event types") from e
    except httpx.HTTPError as e:
        logger.error(f"❌ Failed to list Calendly event types for mentor {mentor.id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch Calendly event types") from e

    event_types = [
        {
            "uri": et.get("uri"),
            "name": et.get("name"),
            "duration": et.get("duration"),
            "schedulingUrl": et.get("scheduling_url"),
            "active": et.get("active", True),
        }
        for et in data.get("collection", [])
    ]
    return {"eventTypes": event_types}


@router.post("/available-times")
async def available_times(
    data: AvailableTimesRequest,
    db: Session = Depends(get_db),
    calendly: CalendlyService = Depends(get_calendly_service),
):
    """Open slots of a service on one day, simulated when Calendly cannot answer"""
    mentor = db.get(Mentor, data.mentorId)
    if not mentor:
        raise HTTPException(status_code=404, detail="Mentor not found")
    service = db.get(Service, data.serviceId)
    if not service or service.mentor_id != mentor.id:
        raise HTTPException(status_code=404, detail="Service not found")

    simulated = {"times": simulated_times(data.date), "source": "simulated"}

    if not mentor.calendly_access_token and not mentor.calendly_refresh_token:
        logger.info(f"ℹ️ Mentor {mentor.id} has no Calendly tokens, using simulated times")
        return simulated

    event_type_uri = service.calendly_event_type_uri or mentor.calendly_event_type_uri
    if not event_type_uri:
        logger.info(f"ℹ️ Service {service.id} has no Calendly event type, using simulated times")
        return simulated

    result = await refresh_calendly_token(db, mentor.id, calendly)
    access_token = result.access_token if result.success else decrypt_token(mentor.calendly_access_token)
    if not access_token:
        return simulated

    day = date_type.fromisoformat(data.date)
    start = max(datetime(day.year, day.month, day.day), datetime.utcnow() + timedelta(minutes=1))
    end = datetime(day.year, day.month, day.day) + timedelta(days=1)
    if end <= start:
        return simulated

    try:
        response = await calendly.get_available_times(access_token, event_type_uri, start, end)
    except httpx.HTTPError as e:
        logger.warning(f"⚠️ Calendly availability failed for mentor {mentor.id}: {e}")
        return simulated

    times = [
        format_slot_time(parse_calendly_time(slot["start_time"]))
        for slot in response.get("collection", [])
        if slot.get("status", "available") == "available" and slot.get("start_time")
    ]
    if not times:
        return simulated
    return {"times": times, "source": "calendly"}
