from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from haven.database import get_db
from haven.dependencies import CurrentUser, PaginationParams, get_current_user, get_optional_user
from haven.schemas import ArticleCreate, ArticleUpdate, CommentCreate, PaginatedResponse
from haven.services import article_service, comment_service, reaction_service

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])


@router.get("", response_model=PaginatedResponse)
async def list_articles(
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.get_articles(
        db, pagination.page, pagination.page_size, pagination.sort_by, pagination.sort_order
    )


@router.post("", status_code=201)
async def create_article(
    data: ArticleCreate,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.create_article(db, current.id, data)
    return {"message": "article created successfully", "article": article}


@router.get("/{slug}")
async def get_article(
    slug: str,
    current: CurrentUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    viewer_id = current.id if current else None
    return {"article": await article_service.get_article(db, slug, viewer_id)}


@router.put("/{slug}")
async def update_article(
    slug: str,
    data: ArticleUpdate,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.update_article(db, slug, current.id, data)
    return {"message": "article updated successfully", "article": article}


@router.delete("/{slug}")
async def archive_article(
    slug: str,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await article_service.archive_article(db, slug, current.id)
    return {"message": "article archived successfully"}


# ---------------------------------------------------------------------------
# Likes / dislikes
# ---------------------------------------------------------------------------

async def _react(db: AsyncSession, slug: str, user_id: int, reaction: str) -> JSONResponse:
    created, article = await reaction_service.add_reaction(db, slug, user_id, reaction)
    if not created:
        return JSONResponse(
            status_code=200,
            content={"message": f"you have already {reaction}d this article"},
        )
    return JSONResponse(
        status_code=201,
        content={"message": f"{reaction} added successfully", "article": article},
    )


@router.post("/{slug}/like")
async def like_article(
    slug: str,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _react(db, slug, current.id, "like")


@router.post("/{slug}/dislike")
async def dislike_article(
    slug: str,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _react(db, slug, current.id, "dislike")


@router.delete("/{slug}/like")
async def remove_like(
    slug: str,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    article = await reaction_service.remove_reaction(db, slug, current.id, "like")
    return {"message": "like removed successfully", "article": article}


@router.delete("/{slug}/dislike")
async def remove_dislike(
    slug: str,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    article = await reaction_service.remove_reaction(db, slug, current.id, "dislike")
    return {"message": "dislike removed successfully", "article": article}


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@router.post("/{slug}/comments", status_code=201)
async def add_comment(
    slug: str,
    data: CommentCreate,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.add_comment(db, slug, current.user, data)
    return {"message": "comment added successfully", "comment": comment}
