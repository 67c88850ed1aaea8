"""
Comment service — append-only comments on published articles.

Comments cannot be edited or deleted through the API.  Only readers who
could see the article may comment on it: archived and unpublished
articles reject comments as not found.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from haven.errors import NotFound
from haven.models import Comment, User
from haven.schemas import CommentCreate
from haven.services import article_service


async def add_comment(
    db: AsyncSession,
    slug: str,
    author: User,
    data: CommentCreate,
) -> dict:
    """Append a comment by *author* to the article at *slug*."""
    article = await article_service.find_by_slug(db, slug)
    if article is None or article.is_archived or article.published_at is None:
        raise NotFound("article not found")

    comment = Comment(body=data.body.strip(), article_id=article.id, author_id=author.id)
    db.add(comment)
    await db.flush()
    comment.author = author
    return article_service.comment_to_dict(comment)
