import os
import time
from unittest.mock import AsyncMock, MagicMock

# Settings are read at import time, so they must be in place before veridie loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["CALENDLY_WEBHOOK_SECRET"] = "calendly-signing-key"
os.environ["CALENDLY_CLIENT_ID"] = "calendly-client-id"
os.environ["CALENDLY_CLIENT_SECRET"] = "calendly-client-secret"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SETUP_SECRET"] = "setup-secret"
os.environ["BASE_URL"] = "http://frontend.test"
os.environ["API_BASE_URL"] = "http://api.test"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest
import stripe
from fastapi.testclient import TestClient
from jose import jwt

from veridie.database import Base, SessionLocal, engine
from veridie.main import app
from veridie.models import Consultant, Mentor, Package, Profile, Service
from veridie.services.calendly_service import CalendlyService, get_calendly_service
from veridie.services.stripe_service import StripeService, get_stripe_service
from veridie.services.supabase_service import SupabaseService, get_supabase_service


def make_token(user_id: str, email: str, role: str = "client", name: str = "Test User", **overrides) -> str:
    claims = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(time.time()) + 3600,
        "user_metadata": {"role": role, "name": name},
    }
    claims.update(overrides)
    return jwt.encode(claims, "test-jwt-secret", algorithm="HS256")


def auth_headers(user_id: str, email: str, role: str = "client", name: str = "Test User") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, email, role, name)}"}


def stripe_object(data: dict):
    return stripe.StripeObject.construct_from(data, "sk_test")


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def stripe_service():
    fake = MagicMock(spec=StripeService)
    fake.is_available.return_value = True
    return fake


@pytest.fixture
def calendly():
    fake = MagicMock(spec=CalendlyService)
    fake.is_configured.return_value = True
    fake.get_authorization_url.side_effect = (
        lambda state: f"https://auth.calendly.com/oauth/authorize?client_id=calendly-client-id&state={state}"
    )
    for name in (
        "exchange_code_for_token",
        "refresh_access_token",
        "get_user_info",
        "list_event_types",
        "get_available_times",
        "create_scheduling_link",
        "create_webhook_subscription",
        "delete_webhook_subscription",
    ):
        setattr(fake, name, AsyncMock())
    return fake


@pytest.fixture
def supabase():
    return MagicMock(spec=SupabaseService)


@pytest.fixture
def client(stripe_service, calendly, supabase):
    app.dependency_overrides[get_stripe_service] = lambda: stripe_service
    app.dependency_overrides[get_calendly_service] = lambda: calendly
    app.dependency_overrides[get_supabase_service] = lambda: supabase
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def student(db):
    profile = Profile(id="student-1", email="student@example.com", name="Sam Student", role="client")
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def student_headers(student):
    return auth_headers(student.id, student.email)


@pytest.fixture
def mentor(db):
    profile = Profile(id="mentor-1", email="mentor@example.com", name="Maya Mentor", role="consultant")
    mentor = Mentor(
        id=profile.id,
        title="Stanford '24",
        university="Stanford University",
        slug="maya-mentor",
        specialties=["Essays", "STEM"],
        stripe_connect_account_id="acct_mentor1",
        stripe_connect_charges_enabled=True,
    )
    db.add_all([profile, mentor])
    db.commit()
    return mentor


@pytest.fixture
def mentor_headers(mentor):
    return auth_headers(mentor.id, "mentor@example.com", role="consultant", name="Maya Mentor")


@pytest.fixture
def service(db, mentor):
    service = Service(
        id="service-1",
        mentor_id=mentor.id,
        name="Essay Review",
        description="One hour essay review",
        price=100.0,
        duration=60,
        stripe_product_id="prod_1",
        stripe_price_id="price_1",
    )
    db.add(service)
    db.commit()
    return service


@pytest.fixture
def consultant(db, mentor):
    consultant = Consultant(
        id="consultant-1",
        user_id=mentor.id,
        slug="maya-consulting",
        headline="Stanford admit, essay coach",
        university="Stanford University",
        contact_email="maya@example.com",
        contact_telegram="@maya",
    )
    db.add(consultant)
    db.commit()
    return consultant


@pytest.fixture
def package(db, consultant):
    package = Package(
        id="package-1",
        consultant_id=consultant.id,
        title="Full Application Review",
        description="Essays, activities and school list",
        price=250.0,
        duration=90,
        is_featured=True,
    )
    db.add(package)
    db.commit()
    return package
