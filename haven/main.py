import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from haven.config import settings
from haven.database import async_session
from haven.errors import register_exception_handlers
from haven.middleware import RequestLogMiddleware
from haven.routers import articles, auth, categories, users
from haven.services import category_service

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging()
    async with async_session() as session:
        created = await category_service.ensure_default_categories(session)
        await session.commit()
    if created:
        logger.info("Created %d default categories", created)
    yield


app = FastAPI(
    title="Haven",
    description="Blogging platform API: accounts, articles, tags, reactions and comments",
    version="1.0.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# Middleware
app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Authorization"],
)

# Routers
app.include_router(users.router)
app.include_router(auth.router)
app.include_router(articles.router)
app.include_router(categories.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
