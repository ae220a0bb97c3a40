"""
Token Exporter - Export Service.

============================================================
RESPONSIBILITY
============================================================
Wires the components for one export run:

1. Opens a shared aiohttp session
2. Fetches the feed (FeedFetchError aborts the run)
3. Builds the info provider for the configured strategy
4. Runs the BatchPipeline and returns its RunSummary

============================================================
"""

import logging
from typing import Optional

import aiohttp

from token_exporter.chains import ChainResolver
from token_exporter.config import ExportConfig, ExporterSettings
from token_exporter.exceptions import ConfigurationError
from token_exporter.feed import TokenFeedClient
from token_exporter.models import InfoStrategy, RunSummary
from token_exporter.pipeline import BatchPipeline
from token_exporter.providers import (
    FeedTrustProvider,
    JsonRpcClient,
    LiveVerifyProvider,
    TokenInfoProvider,
)
from token_exporter.reporting import ProgressReporter
from token_exporter.storage import OutputStore


logger = logging.getLogger(__name__)


class ExportService:
    """
    Runs a full export.

    Usage:
        async with ExportService(config, settings) as service:
            summary = await service.run()
    """

    def __init__(
        self,
        config: ExportConfig,
        settings: Optional[ExporterSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        self._config = config
        self._settings = settings or ExporterSettings()

        errors = self._config.validate() + self._settings.validate()
        if errors:
            raise ConfigurationError(
                message=f"Invalid configuration: {'; '.join(errors)}",
                errors=errors,
            )

        self._session = session
        self._owns_session = session is None
        self._reporter = reporter

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self._get_default_headers())
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": self._settings.user_agent,
        }

    def build_resolver(self) -> ChainResolver:
        return ChainResolver(
            passthrough_unknown=self._settings.passthrough_unknown_chains,
            rpc_overrides=self._settings.rpc_overrides,
        )

    def build_provider(self, session: aiohttp.ClientSession) -> TokenInfoProvider:
        if self._settings.strategy == InfoStrategy.LIVE:
            rpc = JsonRpcClient(session, timeout=self._settings.rpc_timeout_seconds)
            return LiveVerifyProvider(rpc, timeout=self._settings.rpc_timeout_seconds)
        return FeedTrustProvider()

    async def run(self) -> RunSummary:
        """
        Fetch the feed and export every token.

        Raises:
            FeedFetchError: Feed unreachable or unparseable. Nothing is
                written in that case.
            OutputWriteError: Output root cannot be created.
        """
        session = await self._get_session()

        feed = TokenFeedClient(
            session,
            url=self._settings.feed_url,
            timeout=self._settings.feed_timeout_seconds,
        )
        feed_result = await feed.fetch()
        logger.info(f"Total tokens fetched: {feed_result.total}")

        store = OutputStore(self._config.output_dir)
        store.ensure_root()

        pipeline = BatchPipeline(
            config=self._config,
            store=store,
            provider=self.build_provider(session),
            resolver=self.build_resolver(),
            reporter=self._reporter,
        )

        summary = RunSummary(
            feed_records=feed_result.total,
            rejected_records=feed_result.rejected,
        )
        return await pipeline.run(feed_result.records, summary=summary)

    # =========================================================
    # LIFECYCLE
    # =========================================================

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "ExportService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
