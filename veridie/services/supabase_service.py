"""Supabase service - password auth and storage downloads"""

import logging
from typing import Any, Optional

from supabase import Client, create_client

from ..config import SUPABASE_ANON_KEY, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)


class SupabaseNotConfiguredError(RuntimeError):
    pass


class SupabaseAuthError(Exception):
    """Supabase rejected the credentials or the sign-up"""

    pass


class StorageObjectError(Exception):
    """Object could not be fetched from a storage bucket"""

    pass


def _user_dict(user: Any) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "user_metadata": dict(user.user_metadata or {}),
    }


def _session_dict(session: Any) -> Optional[dict[str, Any]]:
    if session is None:
        return None
    return {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_at": session.expires_at,
    }


class SupabaseService:
    """Service for Supabase Auth and Storage"""

    def __init__(
        self,
        url: Optional[str] = SUPABASE_URL,
        anon_key: Optional[str] = SUPABASE_ANON_KEY,
        service_role_key: Optional[str] = SUPABASE_SERVICE_ROLE_KEY,
    ):
        self.url = url
        self.anon_key = anon_key
        self.service_role_key = service_role_key
        self._admin_client: Optional[Client] = None

        if not self.url:
            logger.warning("SUPABASE_URL not set; auth and storage endpoints will fail until configured")

    def is_available(self) -> bool:
        return bool(self.url and (self.anon_key or self.service_role_key))

    def _auth_client(self) -> Client:
        # Sign-in stores the session on the client, so never share it between requests
        key = self.anon_key or self.service_role_key
        if not self.url or not key:
            raise SupabaseNotConfiguredError("Supabase auth not configured")
        return create_client(self.url, key)

    def _storage_client(self) -> Client:
        if self._admin_client is None:
            if not self.url or not self.service_role_key:
                raise SupabaseNotConfiguredError("Supabase storage not configured")
            # service role key bypasses RLS on private buckets
            self._admin_client = create_client(self.url, self.service_role_key)
        return self._admin_client

    def sign_in(self, email: str, password: str) -> dict[str, Any]:
        client = self._auth_client()
        try:
            response = client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            logger.warning(f"⚠️ Supabase sign-in failed for {email}: {e}")
            raise SupabaseAuthError(str(e)) from e

        if response.user is None:
            raise SupabaseAuthError("Invalid login credentials")
        return {"user": _user_dict(response.user), "session": _session_dict(response.session)}

    def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> dict[str, Any]:
        client = self._auth_client()
        try:
            response = client.auth.sign_up(
                {"email": email, "password": password, "options": {"data": metadata}}
            )
        except Exception as e:
            logger.warning(f"⚠️ Supabase sign-up failed for {email}: {e}")
            raise SupabaseAuthError(str(e)) from e

        if response.user is None:
            raise SupabaseAuthError("Sign-up did not return a user")
        return {"user": _user_dict(response.user), "session": _session_dict(response.session)}

    def download_object(self, bucket: str, path: str) -> bytes:
        client = self._storage_client()
        try:
            return client.storage.from_(bucket).download(path)
        except Exception as e:
            logger.warning(f"⚠️ Storage download failed for {bucket}/{path}: {e}")
            raise StorageObjectError(str(e)) from e


supabase_service = SupabaseService()


def get_supabase_service() -> SupabaseService:
    """Dependency injection for SupabaseService"""
    return supabase_service
