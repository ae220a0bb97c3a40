"""
Token Exporter Package - Per-chain token metadata files from a public token list.

Fetches the DefiLlama token list once and writes one JSON file per
(chain, token address) under <output>/<chain>/<address>.json.

Features:
- Bounded concurrency in fixed windows
- Canonical, checksum-verified addresses
- Idempotent, atomic file writes (skip existing unless forced)
- Per-item failure isolation with a categorized run summary
- Optional on-chain verification of decimals/symbol/name

Quick Start:
    from token_exporter import ExportConfig, ExportService

    async def export():
        config = ExportConfig(output_dir=Path("tokens"), chain_filter="ethereum")
        async with ExportService(config) as service:
            summary = await service.run()
        print(summary.to_dict())

Command line:
    python -m token_exporter --output ./tokens --limit 5
"""

__version__ = "1.0.0"

from token_exporter.addresses import AddressNormalizer, normalize_address
from token_exporter.chains import ChainResolver
from token_exporter.config import ExportConfig, ExporterSettings
from token_exporter.exceptions import (
    ConfigurationError,
    ErrorKind,
    FeedFetchError,
    InfoUnavailableError,
    InvalidAddressError,
    OutputWriteError,
    RpcCallError,
    TokenExportError,
    UnknownChainError,
)
from token_exporter.feed import TokenFeedClient
from token_exporter.models import (
    CanonicalAddress,
    InfoStrategy,
    ItemResult,
    ItemState,
    RawTokenRecord,
    ResolvedToken,
    RunSummary,
    TargetChain,
    TokenFields,
)
from token_exporter.pipeline import BatchPipeline
from token_exporter.providers import (
    FeedTrustProvider,
    JsonRpcClient,
    LiveVerifyProvider,
    TokenInfoProvider,
)
from token_exporter.service import ExportService
from token_exporter.storage import OutputStore


__all__ = [
    # Core
    "BatchPipeline",
    "ExportService",
    "ExportConfig",
    "ExporterSettings",
    # Components
    "AddressNormalizer",
    "normalize_address",
    "ChainResolver",
    "OutputStore",
    "TokenFeedClient",
    # Providers
    "TokenInfoProvider",
    "FeedTrustProvider",
    "LiveVerifyProvider",
    "JsonRpcClient",
    # Models
    "CanonicalAddress",
    "InfoStrategy",
    "ItemResult",
    "ItemState",
    "RawTokenRecord",
    "ResolvedToken",
    "RunSummary",
    "TargetChain",
    "TokenFields",
    # Exceptions
    "ErrorKind",
    "TokenExportError",
    "InvalidAddressError",
    "UnknownChainError",
    "RpcCallError",
    "InfoUnavailableError",
    "OutputWriteError",
    "FeedFetchError",
    "ConfigurationError",
]
