import logging
from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from ..config import CALENDLY_CLIENT_ID, CALENDLY_CLIENT_SECRET, CALENDLY_REDIRECT_URI

logger = logging.getLogger(__name__)

WEBHOOK_EVENTS = ["invitee.created", "invitee.canceled"]


def parse_calendly_time(value: str) -> datetime:
    """Calendly timestamps are ISO 8601 in UTC with a trailing Z"""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_slot_time(slot: datetime) -> str:
    """12-hour label used by the booking UI, e.g. "9:00 AM" """
    return f"{slot.hour % 12 or 12}:{slot.minute:02d} {'AM' if slot.hour < 12 else 'PM'}"


class CalendlyService:
    """Service for interacting with Calendly API"""

    BASE_URL = "https://api.calendly.com"
    AUTH_URL = "https://auth.calendly.com/oauth/authorize"
    TOKEN_URL = "https://auth.calendly.com/oauth/token"  # noqa: S105 - OAuth endpoint URL
    TIMEOUT = 15.0

    def __init__(
        self,
        client_id: Optional[str] = CALENDLY_CLIENT_ID,
        client_secret: Optional[str] = CALENDLY_CLIENT_SECRET,
        redirect_uri: Optional[str] = CALENDLY_REDIRECT_URI,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.transport = transport

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.TIMEOUT, transport=self.transport)

    @staticmethod
    def _auth_headers(access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}

    def get_authorization_url(self, state: str) -> str:
        """Generate OAuth authorization URL"""
        if not self.client_id:
            logger.error("CALENDLY_CLIENT_ID not configured in environment variables")
            raise ValueError("Calendly client ID not configured")

        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "state": state,
        }
        logger.info(f"🔗 Generating authorization URL with redirect_uri: {self.redirect_uri}")
        return f"{self.AUTH_URL}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> dict[str, Any]:
        """Exchange authorization code for access token"""
        async with self._client() as client:
            response = await client.post(
                self.TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                },
            )

            if response.status_code != 200:
                logger.error(f"❌ Calendly token exchange failed: {response.status_code}")
                logger.error(f"❌ Redirect URI sent: {self.redirect_uri}")

            response.raise_for_status()
            return response.json()

    async def refresh_access_token(self, refresh_token: str) -> dict[str, Any]:
        """Refresh expired access token"""
        async with self._client() as client:
            response = await client.post(
                self.TOKEN_URL,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
            )
            if response.status_code != 200:
                logger.error(f"❌ Calendly token refresh failed: {response.status_code}")
            response.raise_for_status()
            return response.json()

    async def get_user_info(self, access_token: str) -> dict[str, Any]:
        """Get current user information"""
        async with self._client() as client:
            response = await client.get(
                f"{self.BASE_URL}/users/me", headers=self._auth_headers(access_token)
            )
            response.raise_for_status()
            return response.json()

    async def list_event_types(self, access_token: str, user_uri: str) -> dict[str, Any]:
        """List user's event types"""
        async with self._client() as client:
            response = await client.get(
                f"{self.BASE_URL}/event_types",
                headers=self._auth_headers(access_token),
                params={"user": user_uri},
            )
            response.raise_for_status()
            return response.json()

    async def get_available_times(
        self,
        access_token: str,
        event_type_uri: str,
        start_time: datetime,
        end_time: datetime,
    ) -> dict[str, Any]:
        """
        Get open slots of an event type.

        Calendly limits the window to 7 days and rejects start times in the past.
        """
        async with self._client() as client:
            response = await client.get(
                f"{self.BASE_URL}/event_type_available_times",
                headers=self._auth_headers(access_token),
                params={
                    "event_type": event_type_uri,
                    "start_time": start_time.strftime("%Y-%m-%dT%H:%M:%S.000000Z"),
                    "end_time": end_time.strftime("%Y-%m-%dT%H:%M:%S.000000Z"),
                },
            )
            response.raise_for_status()
            return response.json()

    async def create_scheduling_link(self, access_token: str, event_type_uri: str) -> dict[str, Any]:
        """Create a single-use scheduling link for an event type"""
        async with self._client() as client:
            response = await client.post(
                f"{self.BASE_URL}/scheduling_links",
                headers=self._auth_headers(access_token),
                json={
                    "max_event_count": 1,
                    "owner": event_type_uri,
                    "owner_type": "EventType",
                },
            )
            response.raise_for_status()
            return response.json()

    async def create_webhook_subscription(
        self,
        access_token: str,
        url: str,
        organization_uri: str,
        user_uri: Optional[str] = None,
        events: Optional[list[str]] = None,
        signing_key: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Create a webhook subscription

        Args:
            access_token: Calendly access token
            url: Our webhook endpoint URL
            organization_uri: Organization URI from user info
            user_uri: Scope the subscription to one user instead of the organization
            events: Events to subscribe to (defaults to invitee created/canceled)
            signing_key: Secret Calendly signs deliveries with
        """
        body: dict[str, Any] = {
            "url": url,
            "events": events or WEBHOOK_EVENTS,
            "organization": organization_uri,
            "scope": "user" if user_uri else "organization",
        }
        if user_uri:
            body["user"] = user_uri
        if signing_key:
            body["signing_key"] = signing_key

        async with self._client() as client:
            response = await client.post(
                f"{self.BASE_URL}/webhook_subscriptions",
                headers=self._auth_headers(access_token),
                json=body,
            )
            response.raise_for_status()
            return response.json()

    async def delete_webhook_subscription(self, access_token: str, webhook_uri: str) -> None:
        """Delete a webhook subscription by its full URI"""
        webhook_uuid = webhook_uri.rstrip("/").rsplit("/", 1)[-1]
        async with self._client() as client:
            response = await client.delete(
                f"{self.BASE_URL}/webhook_subscriptions/{webhook_uuid}",
                headers=self._auth_headers(access_token),
            )
            response.raise_for_status()


calendly_service = CalendlyService()


def get_calendly_service() -> CalendlyService:
    """Dependency injection for CalendlyService"""
    return calendly_service
