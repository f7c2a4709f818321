"""FastAPI dependency injection -- Depends() patterns using app.state from lifespan."""

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request

from pmnews.config import Settings
from pmnews.database import Database
from pmnews.tools.firecrawl_tool import FirecrawlTool
from pmnews.tools.news_fetcher import NewsFetcher


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_firecrawl(request: Request) -> FirecrawlTool:
    return FirecrawlTool.from_settings(request.app.state.settings)


def get_fetcher(request: Request) -> NewsFetcher:
    return NewsFetcher(settings=request.app.state.settings)


async def verify_api_key(
    request: Request,
    x_api_key: Annotated[Optional[str], Header()] = None,
):
    """API key gate. Empty API_KEY env var = dev mode (all requests pass)."""
    required_key = request.app.state.settings.api_key
    if required_key and x_api_key != required_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


# Type aliases for cleaner route signatures
DB = Annotated[Database, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Firecrawl = Annotated[FirecrawlTool, Depends(get_firecrawl)]
Fetcher = Annotated[NewsFetcher, Depends(get_fetcher)]
