"""FastAPI dependencies for shared resources."""

from collections.abc import AsyncIterator
from pathlib import Path

import httpx

from core import config
from core.http_client import create_http_client


def get_db_path() -> Path:
    """SQLite database holding teachers and run logs."""
    return config.DB_PATH


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """One HTTP client per request, shared by fetches and LINE calls."""
    async with create_http_client() as client:
        yield client
