"""Seed the database with default categories and, optionally, demo content."""
import argparse
import asyncio
import random
import time

from haven.database import Base, async_session, engine
from haven.models import User
from haven.schemas import ArticleCreate, CommentCreate
from haven.security import hash_password
from haven.services import (
    article_service,
    category_service,
    comment_service,
    reaction_service,
)

TAGS = ["python", "fastapi", "postgresql", "writing", "travel", "startups",
        "design", "health", "football", "science", "music", "career"]

DEMO_PASSWORD = "password123"


async def seed(demo: bool, users: int, articles: int, reset: bool) -> None:
    start = time.perf_counter()

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        created = await category_service.ensure_default_categories(session)
        print(f"  Categories: {created} created")

        if demo:
            hashed = hash_password(DEMO_PASSWORD)
            authors = []
            for i in range(users):
                user = User(
                    first_name=f"Demo{i}",
                    last_name="Writer",
                    user_name=f"demo_{i:03d}",
                    email=f"demo_{i:03d}@example.com",
                    password=hashed,
                    verified=True,
                    bio=f"Demo account number {i}.",
                )
                session.add(user)
                authors.append(user)
            await session.flush()
            print(f"  Users: {len(authors)} (password {DEMO_PASSWORD!r})")

            categories = [c["name"] for c in await category_service.list_categories(session)]
            for i in range(articles):
                author = random.choice(authors)
                article = await article_service.create_article(
                    session,
                    author.id,
                    ArticleCreate(
                        title=f"Notes on {random.choice(TAGS)} #{i}",
                        description="A short demo article.",
                        article_body="Lorem ipsum dolor sit amet. " * 30,
                        status="draft" if random.random() < 0.1 else "publish",
                        category=random.choice(categories),
                        tags=random.sample(TAGS, k=random.randint(1, 4)),
                    ),
                )
                if article["published_at"] is None:
                    continue
                for reader in random.sample(authors, k=min(len(authors), 3)):
                    reaction = "like" if random.random() < 0.8 else "dislike"
                    await reaction_service.add_reaction(session, article["slug"], reader.id, reaction)
                    await comment_service.add_comment(
                        session, article["slug"], reader, CommentCreate(body="Enjoyed this one.")
                    )
            print(f"  Articles: {articles}")

        await session.commit()

    print(f"\nSeeding complete in {time.perf_counter() - start:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the Haven database")
    parser.add_argument("--demo", action="store_true", help="Also create demo users and articles")
    parser.add_argument("--users", type=int, default=10, help="Demo users to create")
    parser.add_argument("--articles", type=int, default=50, help="Demo articles to create")
    parser.add_argument("--reset", action="store_true", help="Drop all tables first")
    args = parser.parse_args()
    asyncio.run(seed(args.demo, args.users, args.articles, args.reset))


if __name__ == "__main__":
    main()
