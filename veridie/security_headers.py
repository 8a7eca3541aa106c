"""
Security Headers Middleware for FastAPI

Adds security headers to all responses:
- X-Frame-Options / frame-ancestors: clickjacking
- X-Content-Type-Options: MIME sniffing
- Content-Security-Policy: restricts resource loading to Stripe, Calendly and Supabase
- Strict-Transport-Security: HTTPS only (production)
- Cache-Control: no-store unless the route set its own policy
"""

import logging
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import BASE_URL, ENVIRONMENT, SUPABASE_URL

logger = logging.getLogger(__name__)

IS_PRODUCTION = ENVIRONMENT == "production"


def get_csp_policy() -> str:
    """
    Generate Content-Security-Policy header value.

    The API serves JSON plus proxied images; only the frontend may frame it.
    """
    supabase_origin = SUPABASE_URL or "https://*.supabase.co"
    directives = [
        "default-src 'self'",
        f"frame-ancestors 'self' {BASE_URL}",
        "script-src 'self' https://js.stripe.com https://assets.calendly.com",
        "style-src 'self'",
        f"img-src 'self' data: blob: {supabase_origin}",
        "frame-src 'self' https://js.stripe.com https://checkout.stripe.com https://calendly.com https://*.calendly.com",
        f"connect-src 'self' https://api.stripe.com https://api.calendly.com https://auth.calendly.com {supabase_origin}",
        "base-uri 'none'",
        "form-action 'self' https://checkout.stripe.com https://auth.calendly.com",
    ]

    return "; ".join(directives)


def get_permissions_policy() -> str:
    """Disable browser features an API never needs"""
    features = [
        "accelerometer=()",
        "camera=()",
        "geolocation=()",
        "gyroscope=()",
        "magnetometer=()",
        "microphone=()",
        "usb=()",
        "interest-cohort=()",
    ]

    return ", ".join(features)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware that adds security headers to all responses."""

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or []

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.exclude_paths):
            return response

        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = get_csp_policy()
        response.headers["Permissions-Policy"] = get_permissions_policy()

        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        # Image proxy sets a long-lived public cache policy; keep it
        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"

        # same-origin-allow-popups keeps the Stripe and Calendly popups working
        response.headers["Cross-Origin-Opener-Policy"] = "same-origin-allow-popups"

        return response
