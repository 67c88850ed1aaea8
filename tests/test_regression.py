"""
Regression tests for issues found during code review.

1. Re-saving an article under its own title must keep its slug
2. Unpublished articles must not collect views
3. A second like must not move likes_count
4. CORS must not set allow_credentials=true with allow_origins=*
"""
import pytest
from httpx import AsyncClient


# ---------------------------------------------------------------------------
# 1. Slug stability
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_with_same_title_keeps_slug(async_client: AsyncClient, register, create_article):
    headers, _ = await register("stable")
    article = await create_article(headers, title="Stable Slug")

    resp = await async_client.put(f"/api/v1/articles/{article['slug']}", headers=headers, json={
        "title": "Stable Slug",
    })
    assert resp.status_code == 200
    assert resp.json()["article"]["slug"] == "stable-slug"


# ---------------------------------------------------------------------------
# 2. Views
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_draft_reads_do_not_count_views(async_client: AsyncClient, register, create_article):
    author, _ = await register("viewsdraft")
    reader, _ = await register("viewsreader")
    draft = await create_article(author, status="draft")
    url = f"/api/v1/articles/{draft['slug']}"

    await async_client.get(url, headers=reader)
    await async_client.get(url)
    own = await async_client.get(url, headers=author)
    assert own.json()["article"]["views"] == 0


# ---------------------------------------------------------------------------
# 3. Counter drift
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_repeated_like_does_not_inflate_counter(
    async_client: AsyncClient, register, create_article
):
    author, _ = await register("driftauthor")
    reader, _ = await register("driftreader")
    article = await create_article(author)
    url = f"/api/v1/articles/{article['slug']}/like"

    for _ in range(3):
        await async_client.post(url, headers=reader)

    detail = await async_client.get(f"/api/v1/articles/{article['slug']}")
    assert detail.json()["article"]["likes_count"] == 1
    assert len(detail.json()["article"]["likes"]) == 1


# ---------------------------------------------------------------------------
# 4. CORS headers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cors_no_credentials_with_wildcard_origin(async_client: AsyncClient):
    """
    When allow_origins=["*"], the response must NOT include
    Access-Control-Allow-Credentials: true.
    """
    resp = await async_client.options(
        "/api/v1/articles",
        headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "GET",
        },
    )
    cred_header = resp.headers.get("access-control-allow-credentials", "").lower()
    assert cred_header != "true", (
        "CORS must not combine allow_origins=* with allow_credentials=true"
    )


@pytest.mark.asyncio
async def test_cors_exposes_authorization_header(async_client: AsyncClient):
    """Browsers can only read the session token header if it is exposed."""
    resp = await async_client.get("/health", headers={"Origin": "https://example.com"})
    exposed = resp.headers.get("access-control-expose-headers", "").lower()
    assert "authorization" in exposed
