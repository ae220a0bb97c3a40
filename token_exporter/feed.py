"""
Token Feed Client - Fetches and validates the public token list.

============================================================
RESPONSIBILITY
============================================================
- Single HTTP GET against the feed endpoint
- Verifies the payload is a JSON array
- Validates each entry with FeedTokenSchema
- Drops invalid entries with a warning (non-fatal)

Any transport, HTTP status or decoding failure raises FeedFetchError,
which aborts the whole run.

============================================================
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from pydantic import ValidationError

from token_exporter.exceptions import FeedFetchError
from token_exporter.models import RawTokenRecord
from token_exporter.schemas import FeedTokenSchema


logger = logging.getLogger(__name__)


DEFAULT_FEED_URL = "https://defillama-datasets.llama.fi/tokenlist/all.json"


@dataclass
class FeedResult:
    """Parsed feed plus the count of entries rejected by validation."""
    records: list[RawTokenRecord] = field(default_factory=list)
    rejected: int = 0

    @property
    def total(self) -> int:
        return len(self.records) + self.rejected


class TokenFeedClient:
    """Fetches the raw token feed over HTTP."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        url: str = DEFAULT_FEED_URL,
        timeout: float = 60.0,
    ) -> None:
        self._session = session
        self._url = url
        self._timeout = timeout

    @property
    def url(self) -> str:
        return self._url

    async def fetch(self) -> FeedResult:
        payload = await self._fetch_json()
        if not isinstance(payload, list):
            raise FeedFetchError(
                message=f"Expected a JSON array, got {type(payload).__name__}",
                url=self._url,
            )
        return self.parse(payload)

    def parse(self, payload: list[Any]) -> FeedResult:
        result = FeedResult()
        for index, entry in enumerate(payload):
            try:
                record = FeedTokenSchema.model_validate(entry).to_record()
            except ValidationError as e:
                result.rejected += 1
                logger.warning(
                    f"Skipping feed entry #{index}: "
                    f"{e.error_count()} validation error(s), first: {e.errors()[0]['msg']}"
                )
                continue
            result.records.append(record)

        logger.info(
            f"Feed parsed: {len(result.records)} tokens accepted, {result.rejected} rejected"
        )
        return result

    async def _fetch_json(self) -> Any:
        logger.info(f"Fetching token feed from {self._url}")
        try:
            async with self._session.get(
                self._url,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise FeedFetchError(
                        message=f"HTTP {response.status}",
                        url=self._url,
                        status_code=response.status,
                        response_body=body[:500],
                    )
                text = await response.text()
        except aiohttp.ClientError as e:
            raise FeedFetchError(
                message=f"Connection error: {e}",
                url=self._url,
                original_error=e,
            ) from e
        except asyncio.TimeoutError as e:
            raise FeedFetchError(
                message=f"Timed out after {self._timeout}s",
                url=self._url,
                original_error=e,
            ) from e

        try:
            return json.loads(text)
        except ValueError as e:
            raise FeedFetchError(
                message=f"Invalid JSON: {e}",
                url=self._url,
                response_body=text[:500],
                original_error=e,
            ) from e
