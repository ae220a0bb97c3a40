"""
Chain Resolver - Static mapping from feed chain ids to target chains.

============================================================
TABLE
============================================================
Source ids are the CoinGecko/DefiLlama platform keys found in the
token feed. Target ids name the output directories. Every target id
is also accepted as a source id of itself.

Each target carries a public JSON-RPC endpoint used by the
live-verify strategy. Endpoints can be overridden per chain with
TOKEN_EXPORT_RPC_<CHAIN> (see config.ExporterSettings).

============================================================
"""

import logging
import re
from typing import Mapping, Optional

from token_exporter.exceptions import UnknownChainError
from token_exporter.models import TargetChain


logger = logging.getLogger(__name__)


# passthrough ids become directory names under the output root
PASSTHROUGH_ID_PATTERN = re.compile(r"[a-z0-9][a-z0-9._-]*")


# target chain id -> (default rpc url, source id aliases)
_CHAIN_TABLE: dict[str, tuple[str, tuple[str, ...]]] = {
    "ethereum": ("https://ethereum-rpc.publicnode.com", ("ethereum",)),
    "bsc": ("https://bsc-rpc.publicnode.com", ("binance-smart-chain", "bsc")),
    "polygon": ("https://polygon-bor-rpc.publicnode.com", ("polygon-pos", "polygon")),
    "arbitrum": ("https://arbitrum-one-rpc.publicnode.com", ("arbitrum-one", "arbitrum")),
    "optimism": ("https://optimism-rpc.publicnode.com", ("optimistic-ethereum", "optimism")),
    "base": ("https://base-rpc.publicnode.com", ("base",)),
    "avalanche": ("https://avalanche-c-chain-rpc.publicnode.com", ("avalanche",)),
    "fantom": ("https://fantom-rpc.publicnode.com", ("fantom",)),
    "gnosis": ("https://gnosis-rpc.publicnode.com", ("xdai", "gnosis")),
    "linea": ("https://linea-rpc.publicnode.com", ("linea",)),
    "scroll": ("https://scroll-rpc.publicnode.com", ("scroll",)),
    "zksync": ("https://mainnet.era.zksync.io", ("zksync",)),
    "mantle": ("https://mantle-rpc.publicnode.com", ("mantle",)),
    "celo": ("https://celo-rpc.publicnode.com", ("celo",)),
    "cronos": ("https://cronos-evm-rpc.publicnode.com", ("cronos",)),
    "moonbeam": ("https://moonbeam-rpc.publicnode.com", ("moonbeam",)),
}


def _build_default_chains() -> dict[str, TargetChain]:
    chains: dict[str, TargetChain] = {}
    for chain_id, (rpc_url, source_ids) in _CHAIN_TABLE.items():
        target = TargetChain(chain_id=chain_id, rpc_url=rpc_url, source_ids=source_ids)
        for source_id in source_ids:
            chains[source_id] = target
    return chains


DEFAULT_CHAINS: dict[str, TargetChain] = _build_default_chains()


def _key(chain_id: str) -> str:
    return chain_id.strip().lower()


def is_safe_chain_id(chain_id: str) -> bool:
    """True if chain_id is a single path segment usable as a directory name."""
    return bool(PASSTHROUGH_ID_PATTERN.fullmatch(chain_id)) and ".." not in chain_id


class ChainResolver:
    """
    Maps a source chain identifier to its TargetChain.

    Strict by default: identifiers missing from the table raise
    UnknownChainError. With passthrough_unknown=True they are passed
    through unchanged as a TargetChain without an RPC endpoint.
    """

    def __init__(
        self,
        chains: Optional[Mapping[str, TargetChain]] = None,
        passthrough_unknown: bool = False,
        rpc_overrides: Optional[Mapping[str, str]] = None,
    ) -> None:
        table = dict(DEFAULT_CHAINS if chains is None else chains)
        overrides = {_key(k): v for k, v in (rpc_overrides or {}).items() if v}

        self._chains: dict[str, TargetChain] = {}
        for source_id, target in table.items():
            rpc_url = overrides.get(target.chain_id, target.rpc_url)
            if rpc_url != target.rpc_url:
                target = TargetChain(
                    chain_id=target.chain_id,
                    rpc_url=rpc_url,
                    source_ids=target.source_ids,
                )
            self._chains[_key(source_id)] = target

        unused = set(overrides) - {t.chain_id for t in self._chains.values()}
        for chain_id in sorted(unused):
            logger.warning(f"RPC override for unknown chain '{chain_id}' ignored")

        self._passthrough_unknown = passthrough_unknown

    @property
    def passthrough_unknown(self) -> bool:
        return self._passthrough_unknown

    def supported_source_ids(self) -> list[str]:
        return sorted(self._chains)

    def target_ids(self) -> list[str]:
        return sorted({target.chain_id for target in self._chains.values()})

    def resolve(self, source_chain_id: str) -> TargetChain:
        key = _key(source_chain_id)
        target = self._chains.get(key)
        if target is not None:
            return target

        if self._passthrough_unknown:
            if is_safe_chain_id(key):
                return TargetChain(chain_id=key, rpc_url=None, source_ids=(key,))
            raise UnknownChainError(
                message=f"Chain '{source_chain_id}' is not a valid directory name",
                chain=source_chain_id,
                supported_chains=self.supported_source_ids(),
            )

        raise UnknownChainError(
            message=f"Chain '{source_chain_id}' is not mapped",
            chain=source_chain_id,
            supported_chains=self.supported_source_ids(),
        )

    def matches(self, chain_filter: str, source_chain_id: str) -> bool:
        """True if chain_filter selects source_chain_id, by source or target id."""
        wanted = _key(chain_filter)
        key = _key(source_chain_id)
        if wanted == key:
            return True
        try:
            return self.resolve(key).chain_id == wanted
        except UnknownChainError:
            return False
