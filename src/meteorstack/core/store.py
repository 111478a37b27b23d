"""
Read client for the remote realtime database holding the dataset.

The store exposes the whole dataset as one JSON node keyed by record id,
read over REST at ``{url}/{secret_path}.json``. A node whose keys are
mostly consecutive integers is served as an array instead.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
import structlog

from ..config import StoreSettings, get_settings

logger = structlog.get_logger(__name__)


class RemoteStoreError(Exception):
    """Raised when the remote store cannot provide the dataset."""


class RemoteStoreClient:
    """
    Async client reading the full dataset from the remote store.

    Every read is bounded by the configured timeout; a timeout is a failure.
    """

    def __init__(self, settings: StoreSettings) -> None:
        self.settings = settings
        self.session: Optional[aiohttp.ClientSession] = None

        logger.info("Remote store client initialized", timeout_ms=settings.timeout_ms)

    async def start(self) -> None:
        """Open the HTTP session."""
        if self.session is not None:
            return

        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.settings.timeout_ms / 1000)
        )
        logger.info("Remote store client started")

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

        logger.info("Remote store client stopped")

    async def fetch_all(self, location: Optional[str] = None, secret_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Read every record of the dataset.

        Args:
            location: Base URL of the store, defaults to the configured one
            secret_path: Path of the dataset node, defaults to the configured one

        Returns:
            Keyed map of raw records, array nodes keyed by index

        Raises:
            RemoteStoreError on network failure, timeout, bad status or malformed payload
        """
        if location is None and secret_path is None:
            url = self.settings.dataset_url
        else:
            base = (location or self.settings.url).rstrip("/")
            path = (secret_path or self.settings.secret_path).strip("/")
            url = f"{base}/{path}.json"

        if self.session is None:
            await self.start()
        assert self.session is not None

        try:
            async with self.session.get(url, headers={"Accept": "application/json"}) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(
                        "Remote store returned error",
                        status=response.status,
                        error=error_text[:200],
                    )
                    raise RemoteStoreError(f"Remote store returned status {response.status}")

                payload = await response.json(content_type=None)

        except asyncio.TimeoutError as e:
            raise RemoteStoreError(f"Remote store read timed out after {self.settings.timeout_ms}ms") from e
        except aiohttp.ClientError as e:
            raise RemoteStoreError(f"Remote store read failed: {e}") from e
        except ValueError as e:
            raise RemoteStoreError("Remote store returned invalid JSON") from e

        # array node, null entries are holes
        if isinstance(payload, list):
            payload = {str(index): value for index, value in enumerate(payload) if value is not None}

        if not isinstance(payload, dict):
            raise RemoteStoreError(f"Remote store returned {type(payload).__name__} instead of an object")

        logger.debug("Remote store read completed", entries=len(payload))
        return payload


# Global store client instance
_store_client: Optional[RemoteStoreClient] = None


def get_store_client() -> RemoteStoreClient:
    """Get or create global store client."""
    global _store_client

    if _store_client is None:
        settings = get_settings()
        _store_client = RemoteStoreClient(settings.store)

    return _store_client
