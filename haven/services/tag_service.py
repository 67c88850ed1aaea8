"""
Tag parsing and resolution.

Tags arrive either as a comma-separated string or as a list.  Names are
trimmed, lowercased and deduplicated (first occurrence wins) before the
count and length rules are applied.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from haven.config import settings
from haven.errors import InvalidTags
from haven.models import Tag

INVALID_TAG_VALUES = "tags should be an array of valid strings"
TAG_LIMITS = "tags cannot be more than 15 and each tag must be more than a character"


def parse_tags(raw: str | list) -> list[str]:
    """
    Normalise *raw* into an ordered list of unique tag names.

    Raises ``InvalidTags`` when an item is not a string, nothing usable
    remains, there are more than ``MAX_TAGS`` tags, or a tag is shorter
    than ``MIN_TAG_LENGTH``.
    """
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, list):
        items = raw
    else:
        raise InvalidTags(INVALID_TAG_VALUES)

    names: list[str] = []
    for item in items:
        if not isinstance(item, str):
            raise InvalidTags(INVALID_TAG_VALUES)
        name = item.strip().lower()
        if name and name not in names:
            names.append(name)

    if not names:
        raise InvalidTags(INVALID_TAG_VALUES)
    if len(names) > settings.MAX_TAGS or any(len(n) < settings.MIN_TAG_LENGTH for n in names):
        raise InvalidTags(TAG_LIMITS)
    return names


def with_extra_tag(raw: str | list | None, extra: str) -> list:
    """Return *raw* as a list with *extra* appended."""
    if raw is None:
        return [extra]
    if isinstance(raw, str):
        return raw.split(",") + [extra]
    return list(raw) + [extra]


async def resolve_tags(db: AsyncSession, names: list[str]) -> list[Tag]:
    """
    Return Tag rows for *names*, creating any that do not exist yet.
    Inserts are flushed within the caller's transaction.
    """
    if not names:
        return []
    existing = {
        tag.name: tag
        for tag in (await db.execute(select(Tag).where(Tag.name.in_(names)))).scalars()
    }
    tags: list[Tag] = []
    for name in names:
        tag = existing.get(name)
        if tag is None:
            tag = Tag(name=name)
            db.add(tag)
        tags.append(tag)
    await db.flush()
    return tags
