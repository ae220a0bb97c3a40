"""
Token Exporter Data Models.

Immutable records flowing through the export pipeline, plus the
per-item state machine and the run summary accumulator.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from eth_utils import to_checksum_address

from token_exporter.exceptions import ErrorKind


TOKEN_TYPE_ERC20 = "ERC20"
DEFAULT_DECIMALS = 18
LOGO_SIZE = "32"


class ItemState(str, Enum):
    """States of a single (token, chain, address) work item."""
    PENDING = "pending"
    RESOLVING_CHAIN = "resolving_chain"
    NORMALIZING_ADDRESS = "normalizing_address"
    CHECKING_EXISTENCE = "checking_existence"
    FETCHING_INFO = "fetching_info"
    WRITING = "writing"
    SKIPPED = "skipped"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemState.SKIPPED, ItemState.DONE, ItemState.FAILED)


class InfoStrategy(str, Enum):
    """Where authoritative decimals/symbol/name come from."""
    FEED = "feed"
    LIVE = "live"


@dataclass(frozen=True)
class RawTokenRecord:
    """One entry of the source feed."""
    symbol: str
    name: str
    platforms: dict[str, Optional[str]] = field(default_factory=dict)
    decimals: Optional[int] = None
    logo_uri: Optional[str] = None

    def fallback_fields(self) -> "TokenFields":
        """Feed-provided fields, used as-is by the feed-trust strategy."""
        return TokenFields(
            symbol=self.symbol,
            name=self.name,
            decimals=self.decimals if self.decimals is not None else DEFAULT_DECIMALS,
        )


@dataclass(frozen=True)
class CanonicalAddress:
    """A 20-byte account address in canonical form."""
    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != 20:
            raise ValueError(f"address must be 20 bytes, got {len(self.raw)}")

    @property
    def hex(self) -> str:
        """Canonical text: lowercase, 0x-prefixed."""
        return "0x" + self.raw.hex()

    @property
    def checksum(self) -> str:
        """EIP-55 mixed-case text."""
        return to_checksum_address(self.hex)

    def __str__(self) -> str:
        return self.hex


@dataclass(frozen=True)
class TargetChain:
    """Internal chain identifier plus its live-data endpoint."""
    chain_id: str
    rpc_url: Optional[str] = None
    source_ids: tuple[str, ...] = ()

    @property
    def supports_live_reads(self) -> bool:
        return bool(self.rpc_url)


@dataclass(frozen=True)
class TokenFields:
    """Authoritative decimals/symbol/name for a token."""
    symbol: str
    name: str
    decimals: int


@dataclass(frozen=True)
class LogoDescriptor:
    """Logo reference written into the token file."""
    src: str
    width: str = LOGO_SIZE
    height: str = LOGO_SIZE

    def to_dict(self) -> dict[str, str]:
        return {"src": self.src, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class ResolvedToken:
    """
    The only entity written to durable storage.

    Field order of to_dict() is the on-disk order. The logo key is
    omitted entirely when there is no logo.
    """
    symbol: str
    name: str
    address: CanonicalAddress
    decimals: int
    platforms: dict[str, str] = field(default_factory=dict)
    logo: Optional[LogoDescriptor] = None
    type: str = TOKEN_TYPE_ERC20

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk JSON object."""
        data: dict[str, Any] = {
            "symbol": self.symbol,
            "name": self.name,
            "address": self.address.hex,
            "decimals": self.decimals,
            "type": self.type,
        }
        if self.logo is not None:
            data["logo"] = self.logo.to_dict()
        data["platforms"] = dict(self.platforms)
        return data


@dataclass(frozen=True)
class WorkItem:
    """One (token, source chain, raw address) triple."""
    token: RawTokenRecord
    source_chain: str
    raw_address: str
    platforms: dict[str, str] = field(default_factory=dict)

    def describe(self) -> str:
        return f"{self.token.symbol} on {self.source_chain}"


@dataclass(frozen=True)
class ItemResult:
    """Terminal outcome of one work item."""
    source_chain: str
    symbol: str
    state: ItemState
    target_chain: Optional[str] = None
    address: Optional[str] = None
    location: Optional[Path] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_chain": self.source_chain,
            "symbol": self.symbol,
            "state": self.state.value,
            "target_chain": self.target_chain,
            "address": self.address,
            "location": str(self.location) if self.location else None,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "message": self.message,
        }


@dataclass
class RunSummary:
    """Counts accumulated over one pipeline run."""
    feed_records: int = 0
    rejected_records: int = 0
    planned: int = 0
    duplicates: int = 0
    done: int = 0
    skipped: int = 0
    failed: int = 0
    failures_by_kind: Counter = field(default_factory=Counter)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    @property
    def processed(self) -> int:
        return self.done + self.skipped + self.failed

    def record(self, result: ItemResult) -> None:
        """Fold one terminal item result into the counts."""
        if result.state == ItemState.DONE:
            self.done += 1
        elif result.state == ItemState.SKIPPED:
            self.skipped += 1
        elif result.state == ItemState.FAILED:
            self.failed += 1
            self.failures_by_kind[result.error_kind or ErrorKind.UNEXPECTED] += 1
        else:
            raise ValueError(f"cannot record non-terminal state {result.state.value}")

    def mark_complete(self, completed_at: datetime) -> None:
        """Mark the run as complete and calculate duration."""
        self.completed_at = completed_at
        if self.started_at:
            self.duration_seconds = (completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "feed_records": self.feed_records,
            "rejected_records": self.rejected_records,
            "planned": self.planned,
            "duplicates": self.duplicates,
            "done": self.done,
            "skipped": self.skipped,
            "failed": self.failed,
            "failures_by_kind": {kind.value: count for kind, count in self.failures_by_kind.items()},
            "duration_seconds": round(self.duration_seconds, 3),
        }
