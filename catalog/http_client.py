import asyncio
from pathlib import Path
from typing import Any, Optional

import httpx
import orjson

from catalog.config import DEFAULT_TIMEOUT, MAX_CONCURRENT_FETCHES, RETRY_ATTEMPTS, RETRY_BACKOFF_FACTOR
from catalog.logging_setup import logger

_fetch_semaphore: Optional[asyncio.Semaphore] = None

def _semaphore() -> asyncio.Semaphore:
    global _fetch_semaphore
    if _fetch_semaphore is None:
        _fetch_semaphore = asyncio.Semaphore(MAX_CONCURRENT_FETCHES)
    return _fetch_semaphore

def get_async_client() -> httpx.AsyncClient:
    """
    Returns a configured httpx.AsyncClient with HTTP/2 support and default timeouts.
    """
    return httpx.AsyncClient(http2=True, timeout=DEFAULT_TIMEOUT)

def is_remote(location: str) -> bool:
    return location.startswith(("http://", "https://"))

async def get_with_retry(client: httpx.AsyncClient, url: str) -> httpx.Response:
    """
    GETs a URL under the shared fetch semaphore, retrying transient
    failures with exponential backoff. 4xx responses are not retried.
    """
    async with _semaphore():
        for attempt in range(RETRY_ATTEMPTS):
            try:
                response = await client.get(url)
                response.raise_for_status()
                return response

            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                if isinstance(e, httpx.HTTPStatusError) and 400 <= e.response.status_code < 500:
                    logger.error(f"Non-retriable HTTP error for {url}: {e}")
                    raise

                if attempt == RETRY_ATTEMPTS - 1:
                    logger.error(f"Final attempt failed for {url}: {e}")
                    raise

                wait_time = RETRY_BACKOFF_FACTOR * (2 ** attempt)
                logger.warning(
                    f"Attempt {attempt + 1}/{RETRY_ATTEMPTS} failed for {url}. "
                    f"Retrying in {wait_time:.2f}s..."
                )
                await asyncio.sleep(wait_time)
    raise RuntimeError("Fetch with retry failed unexpectedly.")

async def fetch_json(location: str) -> Any:
    """
    Loads a JSON document from a URL or a local path.
    """
    if is_remote(location):
        async with get_async_client() as client:
            response = await get_with_retry(client, location)
            return orjson.loads(response.content)
    content = await asyncio.to_thread(Path(location).read_bytes)
    return orjson.loads(content)
