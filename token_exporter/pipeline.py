"""
Batch Pipeline - Bounded concurrent export of token files.

============================================================
RESPONSIBILITY
============================================================
Drives every (token, chain, address) triple of the feed through:

    resolve chain -> normalize address -> existence check
    -> fetch token info -> write file

============================================================
SCHEDULING
============================================================
The planned triples are cut into fixed windows of `concurrency`
items. All items of a window start together and the pipeline waits
for every one of them to reach a terminal state before starting the
next window. In-flight work never exceeds the window size.
File writes run in a worker thread so they do not stall reads
in flight within the same window.

============================================================
FAILURE ISOLATION
============================================================
Each item ends DONE, SKIPPED or FAILED. Errors are caught at the
item boundary, logged as warnings and recorded in the RunSummary.
No per-item error propagates out of run().

============================================================
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Iterator, Optional

from token_exporter.addresses import AddressNormalizer
from token_exporter.chains import ChainResolver
from token_exporter.config import ExportConfig
from token_exporter.exceptions import (
    ConfigurationError,
    ErrorKind,
    InvalidAddressError,
    TokenExportError,
    UnknownChainError,
)
from token_exporter.logging_utils import short_address
from token_exporter.models import (
    CanonicalAddress,
    ItemResult,
    ItemState,
    LogoDescriptor,
    RawTokenRecord,
    ResolvedToken,
    RunSummary,
    TargetChain,
    WorkItem,
)
from token_exporter.providers.base import TokenInfoProvider
from token_exporter.reporting import LoggingProgressReporter, ProgressReporter
from token_exporter.storage import OutputStore


logger = logging.getLogger(__name__)


@dataclass
class ExportPlan:
    """Ordered work items plus the number of duplicate targets dropped."""
    items: list[WorkItem] = field(default_factory=list)
    duplicates: int = 0


class BatchPipeline:
    """
    Window/barrier export pipeline.

    Usage:
        pipeline = BatchPipeline(
            config=ExportConfig(output_dir=Path("tokens")),
            store=OutputStore("tokens"),
            provider=FeedTrustProvider(),
        )
        summary = await pipeline.run(records)
    """

    def __init__(
        self,
        config: ExportConfig,
        store: OutputStore,
        provider: TokenInfoProvider,
        resolver: Optional[ChainResolver] = None,
        normalizer: Optional[AddressNormalizer] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        errors = config.validate()
        if errors:
            raise ConfigurationError(
                message=f"Invalid export config: {'; '.join(errors)}",
                errors=errors,
            )

        self._config = config
        self._store = store
        self._provider = provider
        self._resolver = resolver or ChainResolver()
        self._normalizer = normalizer or AddressNormalizer()
        self._reporter = reporter or LoggingProgressReporter()

    @property
    def config(self) -> ExportConfig:
        return self._config

    # =========================================================
    # PLANNING
    # =========================================================

    def plan(self, tokens: Iterable[RawTokenRecord]) -> ExportPlan:
        """
        Expand records into work items.

        Items are de-duplicated on (target chain, canonical address)
        after resolution and normalization; the first occurrence wins.
        Items whose chain or address cannot be resolved are kept so
        they terminate as FAILED.
        """
        plan = ExportPlan()
        seen: set[tuple[str, str]] = set()
        chain_filter = self._config.chain_filter

        for token in tokens:
            platforms = self.canonical_platforms(token)
            for source_chain, raw_address in token.platforms.items():
                if not raw_address:
                    continue
                if chain_filter and not self._resolver.matches(chain_filter, source_chain):
                    continue

                key = self._target_key(source_chain, raw_address)
                if key is not None:
                    if key in seen:
                        plan.duplicates += 1
                        logger.debug(
                            f"Dropping duplicate target {key[0]}/{key[1]} "
                            f"({token.symbol} via {source_chain})"
                        )
                        continue
                    seen.add(key)

                plan.items.append(
                    WorkItem(
                        token=token,
                        source_chain=source_chain,
                        raw_address=raw_address,
                        platforms=platforms,
                    )
                )

        return plan

    def canonical_platforms(self, token: RawTokenRecord) -> dict[str, str]:
        """Target chain id -> canonical address for every usable platform entry."""
        platforms: dict[str, str] = {}
        for source_chain, raw_address in token.platforms.items():
            if not raw_address:
                continue
            try:
                target = self._resolver.resolve(source_chain)
                address = self._normalizer.normalize(raw_address)
            except (UnknownChainError, InvalidAddressError):
                continue
            platforms.setdefault(target.chain_id, address.hex)
        return platforms

    def _target_key(self, source_chain: str, raw_address: str) -> Optional[tuple[str, str]]:
        try:
            target = self._resolver.resolve(source_chain)
            address = self._normalizer.normalize(raw_address)
        except (UnknownChainError, InvalidAddressError):
            return None
        return target.chain_id, address.hex

    # =========================================================
    # EXECUTION
    # =========================================================

    async def run(
        self,
        tokens: Iterable[RawTokenRecord],
        summary: Optional[RunSummary] = None,
    ) -> RunSummary:
        """
        Process every planned item, one window at a time.

        Args:
            tokens: Feed records
            summary: Accumulator to fill (feed counts may already be set)

        Returns:
            The completed RunSummary
        """
        summary = summary or RunSummary()
        summary.started_at = datetime.utcnow()

        plan = self.plan(tokens)
        summary.planned = len(plan.items)
        summary.duplicates = plan.duplicates

        windows = list(self._windows(plan.items, self._config.concurrency))
        logger.info(
            f"Processing {summary.planned} items in {len(windows)} window(s) "
            f"of up to {self._config.concurrency} "
            f"(force={self._config.force}, chain={self._config.chain_filter or 'all'}, "
            f"provider={self._provider.name})"
        )

        for index, window in enumerate(windows, start=1):
            results = await asyncio.gather(*(self.process_item(item) for item in window))
            for result in results:
                summary.record(result)
                self._reporter.on_item_complete(result)
            self._reporter.on_window_complete(index, len(windows), summary)

        summary.mark_complete(datetime.utcnow())
        self._reporter.on_run_complete(summary)
        return summary

    @staticmethod
    def _windows(items: list[WorkItem], size: int) -> Iterator[list[WorkItem]]:
        for start in range(0, len(items), size):
            yield items[start:start + size]

    async def process_item(self, item: WorkItem) -> ItemResult:
        """Run one item to a terminal state. Never raises."""
        state = ItemState.PENDING
        target: Optional[TargetChain] = None
        address: Optional[CanonicalAddress] = None

        try:
            state = self._transition(item, state, ItemState.RESOLVING_CHAIN)
            target = self._resolver.resolve(item.source_chain)

            state = self._transition(item, state, ItemState.NORMALIZING_ADDRESS)
            address = self._normalizer.normalize(item.raw_address)

            state = self._transition(item, state, ItemState.CHECKING_EXISTENCE)
            location = self._store.location_for(target.chain_id, address)
            if not self._config.force and self._store.exists(location):
                return self._result(item, ItemState.SKIPPED, target, address, location, message="already exists")

            state = self._transition(item, state, ItemState.FETCHING_INFO)
            fields = await self._provider.fetch(target, address, item.token.fallback_fields())

            state = self._transition(item, state, ItemState.WRITING)
            token = ResolvedToken(
                symbol=fields.symbol,
                name=fields.name,
                address=address,
                decimals=fields.decimals,
                platforms=dict(item.platforms),
                logo=LogoDescriptor(src=item.token.logo_uri) if item.token.logo_uri else None,
            )
            await asyncio.to_thread(self._store.write, location, token)
            return self._result(item, ItemState.DONE, target, address, location)

        except TokenExportError as e:
            logger.warning(
                f"{item.describe()} failed while {state.value} [{e.kind.value}]: {e.message}"
            )
            return self._result(
                item, ItemState.FAILED, target, address, None,
                error_kind=e.kind, message=e.message,
            )
        except Exception as e:
            logger.exception(f"{item.describe()} failed unexpectedly while {state.value}: {e}")
            return self._result(
                item, ItemState.FAILED, target, address, None,
                error_kind=ErrorKind.UNEXPECTED, message=str(e),
            )

    def _transition(self, item: WorkItem, current: ItemState, new: ItemState) -> ItemState:
        logger.debug(f"{item.describe()}: {current.value} -> {new.value}")
        return new

    def _result(
        self,
        item: WorkItem,
        state: ItemState,
        target: Optional[TargetChain],
        address: Optional[CanonicalAddress],
        location,
        error_kind: Optional[ErrorKind] = None,
        message: Optional[str] = None,
    ) -> ItemResult:
        if state == ItemState.DONE:
            logger.debug(f"{item.describe()}: wrote {short_address(address.hex)}")
        return ItemResult(
            source_chain=item.source_chain,
            symbol=item.token.symbol,
            state=state,
            target_chain=target.chain_id if target else None,
            address=address.hex if address else None,
            location=location,
            error_kind=error_kind,
            message=message,
        )
