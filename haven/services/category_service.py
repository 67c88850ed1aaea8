"""Category lookup with fallback to the default category."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from haven.config import settings
from haven.models import Category

logger = logging.getLogger(__name__)


async def get_or_create(db: AsyncSession, name: str) -> Category:
    result = await db.execute(select(Category).where(Category.name == name))
    category = result.scalar_one_or_none()
    if category is None:
        category = Category(name=name)
        db.add(category)
        await db.flush()
    return category


async def resolve_category(db: AsyncSession, requested: str) -> tuple[Category, str | None]:
    """
    Return ``(category, fallback_tag)`` for the *requested* name.

    Unknown names resolve to the default category and the requested name
    is handed back as ``fallback_tag`` so the caller can keep it as a tag.
    """
    name = requested.strip().lower()
    result = await db.execute(select(Category).where(Category.name == name))
    category = result.scalar_one_or_none()
    if category is not None:
        return category, None

    default = await get_or_create(db, settings.DEFAULT_CATEGORY)
    logger.debug("Unknown category %r, using %r", name, default.name)
    return default, (name if name != settings.DEFAULT_CATEGORY else None)


async def list_categories(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Category).order_by(Category.name))
    return [{"id": c.id, "name": c.name} for c in result.scalars()]


async def ensure_default_categories(db: AsyncSession) -> int:
    """Insert any configured default categories that are missing.  Returns
    the number created."""
    existing = set((await db.execute(select(Category.name))).scalars())
    missing = [n for n in settings.DEFAULT_CATEGORIES if n not in existing]
    for name in missing:
        db.add(Category(name=name))
    await db.flush()
    return len(missing)
