"""
Like / dislike endpoint tests.

A user holds at most one reaction per article; switching from like to
dislike (or back) moves the reaction, and both counters always match the
stored rows.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from haven.models import Dislike, Like


async def _setup(register, create_article, suffix: str):
    author, _ = await register(f"author_{suffix}")
    reader, reader_user = await register(f"reader_{suffix}")
    article = await create_article(author)
    return reader, reader_user, article


@pytest.mark.asyncio
async def test_like_article(async_client: AsyncClient, register, create_article):
    reader, reader_user, article = await _setup(register, create_article, "like")

    resp = await async_client.post(f"/api/v1/articles/{article['slug']}/like", headers=reader)
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "like added successfully"
    assert body["article"]["likes_count"] == 1
    assert body["article"]["dislikes_count"] == 0
    assert body["article"]["likes"][0]["user_id"] == reader_user["id"]
    assert body["article"]["likes"][0]["user"]["user_name"] == "reader_like"


@pytest.mark.asyncio
async def test_like_twice_is_a_no_op(async_client: AsyncClient, register, create_article):
    reader, _, article = await _setup(register, create_article, "twice")
    url = f"/api/v1/articles/{article['slug']}/like"

    await async_client.post(url, headers=reader)
    again = await async_client.post(url, headers=reader)
    assert again.status_code == 200
    assert again.json() == {"message": "you have already liked this article"}

    detail = await async_client.get(f"/api/v1/articles/{article['slug']}")
    assert detail.json()["article"]["likes_count"] == 1


@pytest.mark.asyncio
async def test_dislike_twice_is_a_no_op(async_client: AsyncClient, register, create_article):
    reader, _, article = await _setup(register, create_article, "dtwice")
    url = f"/api/v1/articles/{article['slug']}/dislike"

    first = await async_client.post(url, headers=reader)
    assert first.status_code == 201
    assert first.json()["message"] == "dislike added successfully"

    again = await async_client.post(url, headers=reader)
    assert again.status_code == 200
    assert again.json() == {"message": "you have already disliked this article"}


@pytest.mark.asyncio
async def test_switching_reaction_moves_it(
    async_client: AsyncClient, register, create_article, session_factory
):
    reader, reader_user, article = await _setup(register, create_article, "switch")
    base = f"/api/v1/articles/{article['slug']}"

    await async_client.post(f"{base}/like", headers=reader)
    resp = await async_client.post(f"{base}/dislike", headers=reader)
    assert resp.status_code == 201
    assert resp.json()["article"]["likes_count"] == 0
    assert resp.json()["article"]["dislikes_count"] == 1

    resp = await async_client.post(f"{base}/like", headers=reader)
    assert resp.json()["article"]["likes_count"] == 1
    assert resp.json()["article"]["dislikes_count"] == 0

    async with session_factory() as session:
        likes = (await session.execute(
            select(func.count()).select_from(Like).where(Like.user_id == reader_user["id"])
        )).scalar_one()
        dislikes = (await session.execute(
            select(func.count()).select_from(Dislike).where(Dislike.user_id == reader_user["id"])
        )).scalar_one()
    assert (likes, dislikes) == (1, 0)


@pytest.mark.asyncio
async def test_counts_track_several_readers(async_client: AsyncClient, register, create_article):
    author, _ = await register("popular")
    article = await create_article(author)
    base = f"/api/v1/articles/{article['slug']}"

    for i in range(3):
        headers, _ = await register(f"fan_{i}")
        await async_client.post(f"{base}/like", headers=headers)
    critic, _ = await register("critic")
    await async_client.post(f"{base}/dislike", headers=critic)

    detail = (await async_client.get(base)).json()["article"]
    assert detail["likes_count"] == 3
    assert detail["dislikes_count"] == 1
    assert len(detail["likes"]) == 3
    assert detail["dislikes"][0]["user"]["user_name"] == "critic"


@pytest.mark.asyncio
async def test_remove_like(async_client: AsyncClient, register, create_article):
    reader, _, article = await _setup(register, create_article, "unlike")
    url = f"/api/v1/articles/{article['slug']}/like"

    await async_client.post(url, headers=reader)
    resp = await async_client.delete(url, headers=reader)
    assert resp.status_code == 200
    assert resp.json()["message"] == "like removed successfully"
    assert resp.json()["article"]["likes_count"] == 0

    # Removing a like that is not there leaves the counters alone.
    again = await async_client.delete(url, headers=reader)
    assert again.status_code == 200
    assert again.json()["article"]["likes_count"] == 0


@pytest.mark.asyncio
async def test_remove_dislike(async_client: AsyncClient, register, create_article):
    reader, _, article = await _setup(register, create_article, "undislike")
    url = f"/api/v1/articles/{article['slug']}/dislike"

    await async_client.post(url, headers=reader)
    resp = await async_client.delete(url, headers=reader)
    assert resp.status_code == 200
    assert resp.json()["message"] == "dislike removed successfully"
    assert resp.json()["article"]["dislikes_count"] == 0


@pytest.mark.asyncio
async def test_reaction_requires_auth(async_client: AsyncClient, register, create_article):
    author, _ = await register("lonely")
    article = await create_article(author)
    resp = await async_client.post(f"/api/v1/articles/{article['slug']}/like")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_reaction_on_missing_article_returns_404(async_client: AsyncClient, register):
    reader, _ = await register("lost")
    resp = await async_client.post("/api/v1/articles/nowhere/like", headers=reader)
    assert resp.status_code == 404
    assert resp.json() == {"error": "article not found"}


@pytest.mark.asyncio
async def test_reaction_on_archived_article_returns_404(
    async_client: AsyncClient, register, create_article
):
    author, _ = await register("shelver")
    reader, _ = await register("latecomer")
    article = await create_article(author)
    await async_client.delete(f"/api/v1/articles/{article['slug']}", headers=author)

    resp = await async_client.post(f"/api/v1/articles/{article['slug']}/like", headers=reader)
    assert resp.status_code == 404
