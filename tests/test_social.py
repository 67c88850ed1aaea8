"""
Social login tests.

Provider HTTP calls are replaced either by patching ``fetch_profile`` or
by routing httpx through a MockTransport, so no request leaves the box.
"""
import httpx
import pytest
from httpx import AsyncClient

from haven import social
from haven.errors import NotFound, Unauthorized
from haven.social import SocialProfile


def _profile(**overrides) -> SocialProfile:
    fields = {
        "provider": "google",
        "social_id": "g-123",
        "email": "jane.doe@gmail.com",
        "first_name": "Jane",
        "last_name": "Doe",
        "avatar_url": "https://example.com/jane.png",
    }
    fields.update(overrides)
    return SocialProfile(**fields)


@pytest.fixture
def provider_profile(monkeypatch):
    """Make ``fetch_profile`` return whatever profile the test sets."""
    state = {"profile": _profile()}

    async def fake_fetch(provider: str, access_token: str) -> SocialProfile:
        if provider not in social.PROVIDERS:
            raise NotFound(f"unsupported social provider '{provider}'")
        return state["profile"]

    monkeypatch.setattr(social, "fetch_profile", fake_fetch)
    return state


def _mock_httpx(monkeypatch, handler) -> None:
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(social.httpx, "AsyncClient", factory)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_first_social_login_creates_user(async_client: AsyncClient, provider_profile):
    resp = await async_client.post("/api/v1/auth/google", json={"access_token": "tok"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["email"] == "jane.doe@gmail.com"
    assert body["user"]["user_name"] == "jane.doe"
    assert body["user"]["verified"] is True
    assert resp.headers["authorization"] == body["token"]

    me = await async_client.get(
        "/api/v1/users/me", headers={"Authorization": f"Bearer {body['token']}"}
    )
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_repeat_social_login_returns_200(async_client: AsyncClient, provider_profile):
    first = await async_client.post("/api/v1/auth/google", json={"access_token": "tok"})
    second = await async_client.post("/api/v1/auth/google", json={"access_token": "tok"})
    assert second.status_code == 200
    assert second.json()["user"]["id"] == first.json()["user"]["id"]
    assert second.json()["token"] != first.json()["token"]


@pytest.mark.asyncio
async def test_social_login_links_existing_account(
    async_client: AsyncClient, register, provider_profile
):
    _, user = await register("janedoe")
    provider_profile["profile"] = _profile(email="janedoe@example.com")

    resp = await async_client.post("/api/v1/auth/google", json={"access_token": "tok"})
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == user["id"]
    assert resp.json()["user"]["verified"] is True


@pytest.mark.asyncio
async def test_social_user_name_collision_gets_suffix(
    async_client: AsyncClient, register, provider_profile
):
    await register("jane")
    provider_profile["profile"] = _profile(email="jane@other.org", social_id="g-999")

    resp = await async_client.post("/api/v1/auth/google", json={"access_token": "tok"})
    assert resp.status_code == 201
    user_name = resp.json()["user"]["user_name"]
    assert user_name != "jane"
    assert user_name.startswith("jane")


@pytest.mark.asyncio
async def test_unsupported_provider_returns_404(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/auth/myspace", json={"access_token": "tok"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_missing_access_token_returns_422(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/auth/google", json={})
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Provider lookups
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_fetch_google_profile(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json={
            "sub": "1087", "email": "sam@gmail.com",
            "given_name": "Sam", "family_name": "Lee", "picture": "https://x/p.png",
        })

    _mock_httpx(monkeypatch, handler)
    profile = await social.fetch_profile("google", "abc")
    assert seen["auth"] == "Bearer abc"
    assert profile == SocialProfile("google", "1087", "sam@gmail.com", "Sam", "Lee", "https://x/p.png")


@pytest.mark.asyncio
async def test_fetch_facebook_profile(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        assert "fields=" in str(request.url)
        return httpx.Response(200, json={
            "id": 42, "email": "kim@fb.com", "first_name": "Kim", "last_name": "Park",
            "picture": {"data": {"url": "https://x/kim.png"}},
        })

    _mock_httpx(monkeypatch, handler)
    profile = await social.fetch_profile("facebook", "abc")
    assert profile.social_id == "42"
    assert profile.avatar_url == "https://x/kim.png"


@pytest.mark.asyncio
async def test_rejected_token_raises_unauthorized(monkeypatch):
    _mock_httpx(monkeypatch, lambda request: httpx.Response(401, json={"error": "bad token"}))
    with pytest.raises(Unauthorized):
        await social.fetch_profile("google", "expired")


@pytest.mark.asyncio
async def test_profile_without_email_raises_unauthorized(monkeypatch):
    _mock_httpx(monkeypatch, lambda request: httpx.Response(200, json={"sub": "1"}))
    with pytest.raises(Unauthorized):
        await social.fetch_profile("google", "no-email-scope")


@pytest.mark.asyncio
async def test_unknown_provider_raises_not_found():
    with pytest.raises(NotFound):
        await social.fetch_profile("myspace", "tok")
