"""
Article service — business logic for the Article aggregate.

Design notes
------------
- Articles are addressed by slug.  Slugs come from the title and get a
  short random suffix on collision.
- Category resolution falls back to the default category; the name the
  author asked for is then kept as an extra tag so it is not lost.
- Eager loading via ``joinedload`` (many-to-one: author, category) and
  ``selectinload`` (collections: tags, comments, likes, dislikes) keeps
  each read to a fixed number of queries.  Reloads after a write use
  ``populate_existing`` so the identity map does not hand back the
  pre-write collections.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import math
import re
import secrets
from datetime import datetime, timezone

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from haven.config import settings
from haven.errors import Forbidden, NotFound, UnprocessableEntity
from haven.models import Article, Comment, Dislike, Like
from haven.schemas import ArticleCreate, ArticleUpdate, PaginatedResponse
from haven.services import category_service, tag_service
from haven.services.user_service import author_to_dict

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SPACE_RE = re.compile(r"[\s_]+")
_SLUG_DASH_RE = re.compile(r"-+")

# Columns that are safe to sort by; guards against arbitrary attribute access.
_SORTABLE_COLUMNS: frozenset[str] = frozenset(
    {"created_at", "published_at", "views", "likes_count", "title"}
)

_EDITABLE_FIELDS = ("title", "description", "article_body", "image")


def slugify(text: str) -> str:
    """Return a URL-safe, lowercase slug derived from *text*."""
    text = _SLUG_STRIP_RE.sub("", text.lower().strip())
    text = _SLUG_SPACE_RE.sub("-", text)
    return _SLUG_DASH_RE.sub("-", text).strip("-")


async def _unique_slug(db: AsyncSession, title: str, exclude_id: int | None = None) -> str:
    base = slugify(title)[:280] or "article"
    slug = base
    while True:
        q = select(Article.id).where(Article.slug == slug)
        if exclude_id is not None:
            q = q.where(Article.id != exclude_id)
        if (await db.execute(q)).first() is None:
            return slug
        slug = f"{base}-{secrets.token_hex(3)}"


def _resolve_sort_column(sort_by: str):
    if sort_by in _SORTABLE_COLUMNS:
        return getattr(Article, sort_by)
    return Article.created_at


def _publication_date(status: str | None, article_body: str | None) -> datetime | None:
    if status == "draft" or not article_body:
        return None
    return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def reaction_to_dict(reaction: Like | Dislike) -> dict:
    user = reaction.user
    return {
        "id": reaction.id,
        "user_id": reaction.user_id,
        "user": {"user_name": user.user_name, "avatar_url": user.avatar_url} if user else None,
        "created_at": _isoformat(reaction.created_at),
    }


def comment_to_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "body": comment.body,
        "article_id": comment.article_id,
        "author": author_to_dict(comment.author),
        "created_at": _isoformat(comment.created_at),
    }


def article_to_dict(article: Article) -> dict:
    """Serialise an Article ORM instance to a plain dict (list view)."""
    category = article.category
    return {
        "id": article.id,
        "slug": article.slug,
        "title": article.title,
        "description": article.description,
        "image": article.image or settings.DEFAULT_ARTICLE_IMAGE,
        "likes_count": article.likes_count,
        "dislikes_count": article.dislikes_count,
        "views": article.views,
        "published_at": _isoformat(article.published_at),
        "is_archived": article.is_archived,
        "created_at": _isoformat(article.created_at),
        "updated_at": _isoformat(article.updated_at),
        "author_id": article.author_id,
        "author": author_to_dict(article.author),
        "category": {"id": category.id, "name": category.name} if category else None,
        "tag_list": [t.name for t in article.tags],
    }


def article_detail_to_dict(article: Article) -> dict:
    """Serialise an Article ORM instance to a plain dict (detail view)."""
    data = article_to_dict(article)
    data["article_body"] = article.article_body
    data["comments"] = [comment_to_dict(c) for c in article.comments]
    data["likes"] = [reaction_to_dict(r) for r in article.likes]
    data["dislikes"] = [reaction_to_dict(r) for r in article.dislikes]
    return data


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_SUMMARY_OPTIONS = (
    joinedload(Article.author),
    joinedload(Article.category),
    selectinload(Article.tags),
)

_DETAIL_OPTIONS = _SUMMARY_OPTIONS + (
    selectinload(Article.comments).joinedload(Comment.author),
    selectinload(Article.likes).joinedload(Like.user),
    selectinload(Article.dislikes).joinedload(Dislike.user),
)


async def find_by_slug(db: AsyncSession, slug: str) -> Article | None:
    result = await db.execute(select(Article).where(Article.slug == slug))
    return result.scalar_one_or_none()


async def load_article(db: AsyncSession, slug: str, detail: bool = False) -> Article | None:
    """Fetch *slug* with its relationships freshly loaded."""
    q = (
        select(Article)
        .where(Article.slug == slug)
        .options(*(_DETAIL_OPTIONS if detail else _SUMMARY_OPTIONS))
        .execution_options(populate_existing=True)
    )
    return (await db.execute(q)).unique().scalar_one_or_none()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_articles(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "published_at",
    sort_order: str = "desc",
) -> PaginatedResponse:
    """
    Return a page of the public feed: published, non-archived articles.

    Issues a COUNT, then a SELECT with LIMIT/OFFSET and the summary
    eager loads.
    """
    visible = (Article.is_archived.is_(False), Article.published_at.is_not(None))

    total: int = (
        await db.execute(select(func.count()).select_from(Article).where(*visible))
    ).scalar_one()

    sort_col = _resolve_sort_column(sort_by)
    order_expr = desc(sort_col) if sort_order == "desc" else asc(sort_col)

    q = (
        select(Article)
        .where(*visible)
        .options(*_SUMMARY_OPTIONS)
        .order_by(order_expr, desc(Article.id))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    articles = (await db.execute(q)).unique().scalars().all()

    return PaginatedResponse(
        items=[article_to_dict(a) for a in articles],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )


async def get_article(db: AsyncSession, slug: str, viewer_id: int | None = None) -> dict:
    """
    Return the detail dict for *slug*.

    The author can always read their own article.  Other readers only see
    published, non-archived articles, and each such read counts as a view.
    """
    article = await load_article(db, slug, detail=True)
    if article is None:
        raise NotFound("article not found")

    if viewer_id is not None and viewer_id == article.author_id:
        return article_detail_to_dict(article)

    if article.is_archived or article.published_at is None:
        raise NotFound("article not found")

    article.views += 1
    await db.flush()
    return article_detail_to_dict(article)


async def get_user_articles(db: AsyncSession, author_id: int) -> dict:
    """All articles written by *author_id*, drafts and archived included."""
    q = (
        select(Article)
        .where(Article.author_id == author_id)
        .options(*_SUMMARY_OPTIONS)
        .order_by(desc(Article.created_at), desc(Article.id))
    )
    articles = (await db.execute(q)).unique().scalars().all()
    return {"total": len(articles), "data": [article_to_dict(a) for a in articles]}


async def create_article(db: AsyncSession, author_id: int, data: ArticleCreate) -> dict:
    """
    Create an article for *author_id* and return its detail dict.

    Raises ``InvalidTags`` when the tag list (including any category
    fallback tag) breaks the tag rules.
    """
    category, fallback_tag = await category_service.resolve_category(db, data.category)

    tags_raw = data.tags
    if fallback_tag:
        tags_raw = tag_service.with_extra_tag(tags_raw, fallback_tag)
    tags = []
    if tags_raw is not None:
        tags = await tag_service.resolve_tags(db, tag_service.parse_tags(tags_raw))

    article = Article(
        slug=await _unique_slug(db, data.title),
        title=data.title,
        description=data.description,
        article_body=data.article_body,
        image=str(data.image) if data.image else None,
        author_id=author_id,
        category_id=category.id,
        published_at=_publication_date(data.status, data.article_body),
    )
    article.tags = tags
    db.add(article)
    await db.flush()

    return article_detail_to_dict(await load_article(db, article.slug, detail=True))


async def update_article(
    db: AsyncSession, slug: str, user_id: int, data: ArticleUpdate
) -> dict:
    """
    Partially update the article at *slug* and return its detail dict.

    Only fields present in the payload are touched.  Tags, when given,
    replace the current set; a category fallback tag is appended to the
    given tags or, if none were given, to the current ones.
    """
    fields = data.model_dump(exclude_unset=True)
    if not fields:
        raise UnprocessableEntity("request body should not be empty")

    article = await load_article(db, slug)
    if article is None or article.is_archived:
        raise NotFound("article not found")
    if article.author_id != user_id:
        raise Forbidden("article not updated")

    tags_raw = fields.pop("tags", None)
    status = fields.pop("status", None)
    category_name = fields.pop("category", None)

    if category_name is not None:
        category, fallback_tag = await category_service.resolve_category(db, category_name)
        article.category_id = category.id
        article.category = category
        if fallback_tag:
            base = tags_raw if tags_raw is not None else [t.name for t in article.tags]
            tags_raw = tag_service.with_extra_tag(base, fallback_tag)

    if tags_raw is not None:
        article.tags = await tag_service.resolve_tags(db, tag_service.parse_tags(tags_raw))

    for field in _EDITABLE_FIELDS:
        if field not in fields:
            continue
        value = fields[field]
        if field == "title":
            if value is None:
                continue
            value = value.strip()
        elif field == "image" and value is not None:
            value = str(value)
        setattr(article, field, value)

    if fields.get("title"):
        article.slug = await _unique_slug(db, article.title, exclude_id=article.id)

    if status == "draft":
        article.published_at = None
    elif status == "publish" and article.article_body and article.published_at is None:
        article.published_at = datetime.now(timezone.utc)

    await db.flush()
    return article_detail_to_dict(await load_article(db, article.slug, detail=True))


async def archive_article(db: AsyncSession, slug: str, user_id: int) -> None:
    """Archive *slug*; archived articles disappear from every public read."""
    article = await find_by_slug(db, slug)
    if article is None or article.is_archived:
        raise NotFound("article not found")
    if article.author_id != user_id:
        raise Forbidden("you can only archive your own articles")
    article.is_archived = True
    await db.flush()
