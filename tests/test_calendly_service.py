import json
from datetime import datetime
from urllib.parse import parse_qs

import httpx
import pytest

from veridie.services.calendly_service import CalendlyService

EVENT_TYPE = "https://api.calendly.com/event_types/et-1"


def recording_service(responder):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return responder(request)

    service = CalendlyService(
        client_id="cid",
        client_secret="csecret",
        redirect_uri="http://api.test/api/calendly/callback",
        transport=httpx.MockTransport(handler),
    )
    return service, requests


def form(request: httpx.Request) -> dict:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


@pytest.mark.asyncio
async def test_code_exchange_posts_authorization_code_grant():
    service, requests = recording_service(lambda r: httpx.Response(200, json={"access_token": "a"}))

    tokens = await service.exchange_code_for_token("code-1")

    assert tokens == {"access_token": "a"}
    request = requests[0]
    assert str(request.url) == "https://auth.calendly.com/oauth/token"
    assert form(request) == {
        "grant_type": "authorization_code",
        "code": "code-1",
        "client_id": "cid",
        "client_secret": "csecret",
        "redirect_uri": "http://api.test/api/calendly/callback",
    }


@pytest.mark.asyncio
async def test_refresh_posts_refresh_token_grant():
    service, requests = recording_service(lambda r: httpx.Response(200, json={"access_token": "b"}))

    await service.refresh_access_token("refresh-1")

    body = form(requests[0])
    assert body["grant_type"] == "refresh_token"
    assert body["refresh_token"] == "refresh-1"
    assert body["client_id"] == "cid"
    assert "redirect_uri" not in body


@pytest.mark.asyncio
async def test_refresh_failure_raises_status_error():
    service, _ = recording_service(lambda r: httpx.Response(400, json={"error": "invalid_grant"}))

    with pytest.raises(httpx.HTTPStatusError):
        await service.refresh_access_token("revoked")


@pytest.mark.asyncio
async def test_scheduling_link_is_single_use():
    service, requests = recording_service(
        lambda r: httpx.Response(201, json={"resource": {"booking_url": "https://calendly.com/d/abc"}})
    )

    link = await service.create_scheduling_link("access-1", EVENT_TYPE)

    assert link["resource"]["booking_url"] == "https://calendly.com/d/abc"
    request = requests[0]
    assert str(request.url) == "https://api.calendly.com/scheduling_links"
    assert request.headers["Authorization"] == "Bearer access-1"
    assert json.loads(request.content) == {"max_event_count": 1, "owner": EVENT_TYPE, "owner_type": "EventType"}


@pytest.mark.asyncio
async def test_available_times_query():
    service, requests = recording_service(lambda r: httpx.Response(200, json={"collection": []}))

    await service.get_available_times("access-1", EVENT_TYPE, datetime(2030, 1, 7), datetime(2030, 1, 8))

    request = requests[0]
    assert request.url.path == "/event_type_available_times"
    assert request.url.params["event_type"] == EVENT_TYPE
    assert request.url.params["start_time"] == "2030-01-07T00:00:00.000000Z"
    assert request.url.params["end_time"] == "2030-01-08T00:00:00.000000Z"


@pytest.mark.asyncio
async def test_webhook_subscription_scoped_to_user():
    service, requests = recording_service(lambda r: httpx.Response(201, json={"resource": {"uri": "wh-1"}}))

    await service.create_webhook_subscription(
        "access-1",
        url="http://api.test/api/webhooks/calendly",
        organization_uri="https://api.calendly.com/organizations/org-1",
        user_uri="https://api.calendly.com/users/u-1",
        signing_key="calendly-signing-key",
    )

    body = json.loads(requests[0].content)
    assert body["events"] == ["invitee.created", "invitee.canceled"]
    assert body["scope"] == "user"
    assert body["user"] == "https://api.calendly.com/users/u-1"
    assert body["signing_key"] == "calendly-signing-key"


def test_authorization_url_carries_state():
    service, _ = recording_service(lambda r: httpx.Response(200))

    url = service.get_authorization_url("signed-state")

    assert url.startswith("https://auth.calendly.com/oauth/authorize?")
    query = parse_qs(url.split("?", 1)[1])
    assert query["state"] == ["signed-state"]
    assert query["response_type"] == ["code"]
    assert query["redirect_uri"] == ["http://api.test/api/calendly/callback"]
