"""
HTTP-клиенты сервиса профилей поверх httpx.MockTransport.
"""
import json
from typing import Any, Dict, List

import httpx
import pytest

from cardbot.services.api_client import (
    APIHTTPError, APINetworkError, AuthAPIClient, ProfileAPIClient, error_message,
)

BASE_URL = "http://profiles.test"


def recording_transport(requests: List[httpx.Request], status_code: int = 200, body: Any = None):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body if body is not None else {"success": True, "data": {}})
    return httpx.MockTransport(handler)


PARTS = [
    ("profileData", (None, json.dumps({"profileType": "student", "layout": "single"}))),
    ("photo", ("me.jpg", b"\xff\xd8jpeg", "image/jpeg")),
]


@pytest.mark.asyncio
async def test_create_profile_posts_multipart_with_bearer_token():
    requests: List[httpx.Request] = []
    transport = recording_transport(requests, 201, {"success": True, "data": {"_id": "p1"}})
    client = ProfileAPIClient(base_url=BASE_URL, transport=transport)

    result = await client.create_profile(PARTS, token="jwt-token")

    assert result == {"_id": "p1"}
    request = requests[0]
    assert request.method == "POST"
    assert request.url == httpx.URL(f"{BASE_URL}/api/profiles")
    assert request.headers["Authorization"] == "Bearer jwt-token"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b'name="profileData"' in request.content
    assert b'"layout": "single"' in request.content
    assert b'name="photo"; filename="me.jpg"' in request.content


@pytest.mark.asyncio
async def test_metadata_only_submission_is_still_multipart():
    requests: List[httpx.Request] = []
    client = ProfileAPIClient(base_url=BASE_URL, transport=recording_transport(requests, 201))

    await client.create_profile(PARTS[:1])

    assert requests[0].headers["Content-Type"].startswith("multipart/form-data")
    assert "Authorization" not in requests[0].headers


@pytest.mark.asyncio
async def test_update_profile_puts_to_profile_url():
    requests: List[httpx.Request] = []
    client = ProfileAPIClient(base_url=BASE_URL + "/", transport=recording_transport(requests))

    await client.update_profile("p1", PARTS, token="jwt")

    assert requests[0].method == "PUT"
    assert requests[0].url.path == "/api/profiles/p1"


@pytest.mark.asyncio
async def test_http_error_carries_service_message():
    requests: List[httpx.Request] = []
    transport = recording_transport(requests, 409, {"success": False, "message": "Profile already exists"})
    client = ProfileAPIClient(base_url=BASE_URL, transport=transport)

    with pytest.raises(APIHTTPError) as exc_info:
        await client.create_profile(PARTS, token="jwt")

    assert exc_info.value.status_code == 409
    assert str(exc_info.value) == "Profile already exists"


@pytest.mark.asyncio
async def test_create_network_error_is_not_retried():
    attempts: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = ProfileAPIClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))

    with pytest.raises(APINetworkError):
        await client.create_profile(PARTS)
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_get_profile_returns_data_or_none():
    requests: List[httpx.Request] = []
    found = ProfileAPIClient(
        base_url=BASE_URL,
        transport=recording_transport(requests, 200, {"success": True, "data": {"_id": "p1", "layout": "single"}}),
    )
    missing = ProfileAPIClient(
        base_url=BASE_URL,
        transport=recording_transport(requests, 404, {"success": False, "message": "Profile not found"}),
    )

    assert await found.get_profile("p1", token="jwt") == {"_id": "p1", "layout": "single"}
    assert await missing.get_profile("nope", token="jwt") is None
    assert requests[0].url.path == "/api/profiles/p1"


@pytest.mark.asyncio
async def test_list_toggle_and_delete_use_expected_routes():
    requests: List[httpx.Request] = []
    body: Dict[str, Any] = {"success": True, "data": [{"_id": "p1"}]}
    client = ProfileAPIClient(base_url=BASE_URL, transport=recording_transport(requests, 200, body))

    assert await client.list_profiles(token="jwt") == [{"_id": "p1"}]
    await client.toggle_profile_status("p1", token="jwt")
    assert await client.delete_profile("p1", token="jwt") is True

    assert [(r.method, r.url.path) for r in requests] == [
        ("GET", "/api/profiles"),
        ("PATCH", "/api/profiles/p1/toggle"),
        ("DELETE", "/api/profiles/p1"),
    ]


@pytest.mark.asyncio
async def test_login_returns_token_and_user():
    requests: List[httpx.Request] = []
    body = {"success": True, "data": {"token": "jwt", "user": {"name": "Anna"}}}
    client = AuthAPIClient(base_url=BASE_URL, transport=recording_transport(requests, 200, body))

    data = await client.login("anna@example.com", "secret")

    assert data["token"] == "jwt"
    assert requests[0].url.path == "/api/auth/login"
    assert json.loads(requests[0].content) == {"email": "anna@example.com", "password": "secret"}


@pytest.mark.asyncio
async def test_login_rejected_credentials():
    requests: List[httpx.Request] = []
    body = {"success": False, "message": "Invalid credentials"}
    client = AuthAPIClient(base_url=BASE_URL, transport=recording_transport(requests, 401, body))

    with pytest.raises(APIHTTPError) as exc_info:
        await client.login("anna@example.com", "wrong")
    assert exc_info.value.status_code == 401
    assert str(exc_info.value) == "Invalid credentials"


def test_error_message_falls_back_to_body_text():
    assert error_message(httpx.Response(502, text="Bad gateway")) == "Bad gateway"
    assert error_message(httpx.Response(503)) == "HTTP 503"


@pytest.mark.asyncio
async def test_success_status_with_non_json_body_is_an_api_error():
    requests: List[httpx.Request] = []
    client = ProfileAPIClient(
        base_url=BASE_URL, transport=recording_transport(requests, 200, "<html>maintenance</html>"),
    )

    with pytest.raises(APIHTTPError) as create_error:
        await client.create_profile(PARTS, token="jwt")
    with pytest.raises(APIHTTPError) as list_error:
        await client.list_profiles(token="jwt")

    assert create_error.value.status_code == 200
    assert str(create_error.value) == "<html>maintenance</html>"
    assert list_error.value.status_code == 200
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_login_with_non_json_body_is_an_api_error():
    requests: List[httpx.Request] = []
    client = AuthAPIClient(base_url=BASE_URL, transport=recording_transport(requests, 200, "OK"))

    with pytest.raises(APIHTTPError):
        await client.login("anna@example.com", "secret")
