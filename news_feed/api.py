"""
News Feed API - Read-only HTTP surface over the Snapshot Store.

Routes:
- GET /articles              full snapshot {latest, related}
- GET /articles/{theme_id}   one theme's articles

Handlers only read the store; they never trigger a fetch.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, FastAPI, HTTPException
from pydantic import BaseModel

from .base import BaseNewsSource
from .scheduler import RefreshScheduler
from .store import SnapshotStore
from .themes import ThemeSource


logger = logging.getLogger(__name__)


# =======================
# SCHEMAS
# =======================

class ArticleSchema(BaseModel):
    source: str
    author: str
    title: str
    description: str
    uri: str
    uriToImage: str
    publishedAt: Optional[float] = None  # null when the provider gave no usable date


class ThemeArticlesSchema(BaseModel):
    themeID: int
    articles: List[ArticleSchema]


class ArticlesResponse(BaseModel):
    latest: List[ArticleSchema]
    related: List[ThemeArticlesSchema]


# =======================
# ROUTES
# =======================

def create_router(store: SnapshotStore, theme_source: ThemeSource) -> APIRouter:
    """Build the /articles router bound to a store and theme source."""
    router = APIRouter(prefix="/articles", tags=["News"])

    @router.get("", response_model=ArticlesResponse)
    def get_articles():
        """
        Get the latest headlines and every theme's related articles.
        """
        snapshot = store.current()
        if snapshot is None:
            raise HTTPException(status_code=503, detail="Articles not yet available")
        return snapshot.to_dict()

    @router.get("/{theme_id}", response_model=ThemeArticlesSchema)
    def get_theme_articles(theme_id: str):
        """
        Get articles for one theme.

        Unknown or non-numeric theme IDs are a 404; a known theme
        missing from the snapshot gets an empty list.
        """
        try:
            theme_id = int(theme_id)
        except ValueError:
            logger.info(f"Invalid themeID {theme_id!r}")
            raise HTTPException(status_code=404, detail="Theme not found")

        if not theme_source.exists(theme_id):
            logger.info(f"Invalid themeID {theme_id}")
            raise HTTPException(status_code=404, detail="Theme not found")

        snapshot = store.current()
        articles = snapshot.articles_for(theme_id) if snapshot else ()
        return {
            "themeID": theme_id,
            "articles": [a.to_dict() for a in articles],
        }

    return router


def create_app(
    store: SnapshotStore,
    theme_source: ThemeSource,
    scheduler: Optional[RefreshScheduler] = None,
    source: Optional[BaseNewsSource] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    When a scheduler is given it is started with the app and stopped on
    shutdown. A given source is closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if scheduler is not None:
            await scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                await scheduler.stop()
            if source is not None:
                await source.close()

    app = FastAPI(
        title="News Feed API",
        description="Periodically refreshed headlines and theme-related articles.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(create_router(store, theme_source))

    @app.get("/")
    def root():
        return {
            "status": "ok",
            "snapshot": store.get_status(),
        }

    return app
