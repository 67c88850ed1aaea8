"""
Reaction service — likes and dislikes on articles.

A user holds at most one like and at most one dislike per article, and
never both: adding one removes the other.  ``likes_count`` and
``dislikes_count`` are recomputed from the rows with COUNT queries after
every change rather than incremented, and the whole sequence runs in
the request transaction, so the counters always match the rows.
"""
import logging
from typing import Literal

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from haven.errors import NotFound
from haven.models import ARTICLE_CONTENT, Article, Dislike, Like
from haven.services import article_service

logger = logging.getLogger(__name__)

Reaction = Literal["like", "dislike"]

_MODELS = {"like": Like, "dislike": Dislike}
_OPPOSITE = {"like": "dislike", "dislike": "like"}


def _for_article(model, article_id: int):
    return (model.content_type == ARTICLE_CONTENT, model.content_id == article_id)


async def _get_article(db: AsyncSession, slug: str) -> Article:
    article = await article_service.find_by_slug(db, slug)
    if article is None or article.is_archived:
        raise NotFound("article not found")
    return article


async def _user_reaction(db: AsyncSession, model, article_id: int, user_id: int):
    q = (
        select(model)
        .where(*_for_article(model, article_id), model.user_id == user_id)
        .options(joinedload(model.user))
        .execution_options(populate_existing=True)
    )
    return (await db.execute(q)).scalar_one_or_none()


async def _remove(db: AsyncSession, model, article_id: int, user_id: int) -> None:
    await db.execute(
        delete(model)
        .where(*_for_article(model, article_id), model.user_id == user_id)
        .execution_options(synchronize_session="fetch")
    )


async def refresh_counts(db: AsyncSession, article: Article) -> None:
    """Set both counters on *article* from the current reaction rows."""
    article.likes_count = (
        await db.execute(
            select(func.count()).select_from(Like).where(*_for_article(Like, article.id))
        )
    ).scalar_one()
    article.dislikes_count = (
        await db.execute(
            select(func.count()).select_from(Dislike).where(*_for_article(Dislike, article.id))
        )
    ).scalar_one()
    await db.flush()


async def _reloaded(db: AsyncSession, slug: str) -> dict:
    return article_service.article_to_dict(await article_service.load_article(db, slug))


async def add_reaction(
    db: AsyncSession, slug: str, user_id: int, reaction: Reaction
) -> tuple[bool, dict]:
    """
    Like or dislike the article at *slug* on behalf of *user_id*.

    Returns ``(created, payload)``.  When the user already holds this
    reaction nothing changes and ``created`` is False.  Otherwise the
    opposite reaction is dropped, the new one stored, both counters
    recomputed, and the payload carries the article with the user's own
    reaction under ``likes`` / ``dislikes``.
    """
    article = await _get_article(db, slug)
    article_id = article.id
    model = _MODELS[reaction]

    if await _user_reaction(db, model, article_id, user_id) is not None:
        return False, {}

    try:
        async with db.begin_nested():
            await _remove(db, _MODELS[_OPPOSITE[reaction]], article_id, user_id)
            db.add(model(user_id=user_id, content_type=ARTICLE_CONTENT, content_id=article_id))
    except IntegrityError:
        # A concurrent request stored the same reaction first.
        logger.info("Duplicate %s on article id=%s by user id=%s", reaction, article_id, user_id)
        return False, {}

    await refresh_counts(db, article)

    own = await _user_reaction(db, model, article_id, user_id)
    payload = await _reloaded(db, slug)
    payload[f"{reaction}s"] = [article_service.reaction_to_dict(own)]
    return True, payload


async def remove_reaction(
    db: AsyncSession, slug: str, user_id: int, reaction: Reaction
) -> dict:
    """Drop the user's like or dislike (if any) and recompute the counters."""
    article = await _get_article(db, slug)
    await _remove(db, _MODELS[reaction], article.id, user_id)
    await refresh_counts(db, article)
    return await _reloaded(db, slug)
