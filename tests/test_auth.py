import time

from jose import jwt

from veridie.models import Mentor, Profile
from veridie.services.supabase_service import SupabaseAuthError

from .conftest import auth_headers, make_token


def test_me_requires_a_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert "error" in response.json()


def test_me_rejects_malformed_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_expired_token_is_flagged(client):
    token = make_token("user-x", "x@example.com", exp=int(time.time()) - 10)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.headers.get("X-Token-Expired") == "true"


def test_wrong_audience_is_rejected(client):
    token = make_token("user-x", "x@example.com", aud="anon")
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_token_signed_with_other_secret_is_rejected(client):
    token = jwt.encode(
        {"sub": "user-x", "aud": "authenticated", "exp": int(time.time()) + 60},
        "someone-elses-secret",
        algorithm="HS256",
    )
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_first_request_creates_profile(client, db):
    response = client.get("/api/auth/me", headers=auth_headers("new-user", "new@example.com", name="Nia"))
    assert response.status_code == 200
    assert response.json()["name"] == "Nia"
    assert response.json()["role"] == "client"

    assert db.get(Profile, "new-user") is not None
    assert db.get(Mentor, "new-user") is None


def test_consultant_token_creates_mentor_row(client, db):
    headers = auth_headers("new-mentor", "coach@example.com", role="consultant")
    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 200
    assert db.get(Mentor, "new-mentor") is not None


def test_login_returns_profile_and_session(client, supabase, student):
    supabase.sign_in.return_value = {
        "user": {"id": student.id, "email": student.email, "user_metadata": {}},
        "session": {"access_token": "access", "refresh_token": "refresh", "expires_at": 1700000000},
    }

    response = client.post("/api/auth/login", json={"email": student.email, "password": "hunter22"})

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["id"] == student.id
    assert body["user"]["name"] == "Sam Student"
    assert body["session"]["access_token"] == "access"
    supabase.sign_in.assert_called_once_with(student.email, "hunter22")


def test_login_with_bad_credentials(client, supabase):
    supabase.sign_in.side_effect = SupabaseAuthError("Invalid login credentials")
    response = client.post("/api/auth/login", json={"email": "a@example.com", "password": "nope"})
    assert response.status_code == 401


def test_login_missing_field(client):
    response = client.post("/api/auth/login", json={"email": "a@example.com"})
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required fields"


def test_signup_consultant_creates_mentor(client, supabase, db):
    supabase.sign_up.return_value = {
        "user": {"id": "signup-1", "email": "coach@example.com", "user_metadata": {}},
        "session": None,
    }

    response = client.post(
        "/api/auth/signup",
        json={"email": "coach@example.com", "password": "secret123", "name": "Coach", "role": "consultant"},
    )

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "consultant"
    assert response.json()["session"] is None
    assert db.get(Mentor, "signup-1") is not None
