"""
Token Exporter - Configuration.

============================================================
PURPOSE
============================================================
ExportConfig holds the four knobs the pipeline consumes:
output root, force-overwrite, chain filter, window size.

ExporterSettings holds everything around it (feed endpoint,
info strategy, timeouts, RPC endpoint overrides) and is loaded
from the environment, with .env support via python-dotenv.

============================================================
ENVIRONMENT
============================================================
TOKEN_EXPORT_FEED_URL                   feed endpoint
TOKEN_EXPORT_FEED_TIMEOUT               seconds (default 60)
TOKEN_EXPORT_STRATEGY                   feed | live (default feed)
TOKEN_EXPORT_RPC_TIMEOUT                seconds per contract read (default 10)
TOKEN_EXPORT_PASSTHROUGH_UNKNOWN_CHAINS true/false (default false)
TOKEN_EXPORT_USER_AGENT                 HTTP User-Agent header
TOKEN_EXPORT_RPC_<CHAIN>                RPC endpoint override, e.g.
                                        TOKEN_EXPORT_RPC_ETHEREUM

============================================================
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from token_exporter.exceptions import ConfigurationError
from token_exporter.feed import DEFAULT_FEED_URL
from token_exporter.models import InfoStrategy


ENV_PREFIX = "TOKEN_EXPORT_"
RPC_ENV_PREFIX = f"{ENV_PREFIX}RPC_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


# ============================================================
# PIPELINE CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class ExportConfig:
    """
    Core pipeline configuration.
    """

    output_dir: Path = Path("./tokens")
    """Root of the <chain>/<address>.json tree."""

    force: bool = False
    """Overwrite files that already exist."""

    chain_filter: Optional[str] = None
    """Only process this chain (source or target id)."""

    concurrency: int = 5
    """Window size: items started together before the barrier."""

    def validate(self) -> List[str]:
        errors = []
        if self.concurrency < 1:
            errors.append("concurrency must be at least 1")
        if self.chain_filter is not None and not self.chain_filter.strip():
            errors.append("chain filter must not be blank")
        if not str(self.output_dir).strip():
            errors.append("output directory must not be blank")
        return errors


# ============================================================
# RUNTIME SETTINGS
# ============================================================

@dataclass(frozen=True)
class ExporterSettings:
    """
    Settings around the core pipeline.
    """

    feed_url: str = DEFAULT_FEED_URL
    feed_timeout_seconds: float = 60.0
    strategy: InfoStrategy = InfoStrategy.FEED
    rpc_timeout_seconds: float = 10.0
    passthrough_unknown_chains: bool = False
    user_agent: str = "token-exporter/1.0"
    rpc_overrides: Mapping[str, str] = field(default_factory=dict)

    def validate(self) -> List[str]:
        errors = []
        if not self.feed_url.strip():
            errors.append("feed URL must not be blank")
        if self.feed_timeout_seconds <= 0:
            errors.append("feed timeout must be positive")
        if self.rpc_timeout_seconds <= 0:
            errors.append("RPC timeout must be positive")
        return errors

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        load_env_file: bool = True,
    ) -> "ExporterSettings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of os.environ
            load_env_file: Load .env into os.environ first

        Raises:
            ConfigurationError: If a value cannot be parsed
        """
        if env is None:
            if load_env_file:
                load_dotenv()
            env = os.environ

        defaults = cls()
        return cls(
            feed_url=env.get(f"{ENV_PREFIX}FEED_URL", defaults.feed_url),
            feed_timeout_seconds=_parse_float(
                env, f"{ENV_PREFIX}FEED_TIMEOUT", defaults.feed_timeout_seconds
            ),
            strategy=_parse_strategy(env, f"{ENV_PREFIX}STRATEGY", defaults.strategy),
            rpc_timeout_seconds=_parse_float(
                env, f"{ENV_PREFIX}RPC_TIMEOUT", defaults.rpc_timeout_seconds
            ),
            passthrough_unknown_chains=_parse_bool(
                env, f"{ENV_PREFIX}PASSTHROUGH_UNKNOWN_CHAINS", defaults.passthrough_unknown_chains
            ),
            user_agent=env.get(f"{ENV_PREFIX}USER_AGENT", defaults.user_agent),
            rpc_overrides=_rpc_overrides(env),
        )


# ============================================================
# PARSING HELPERS
# ============================================================

def _parse_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(
            message=f"{key} must be a number, got '{raw}'",
            config_key=key,
            original_error=e,
        ) from e


def _parse_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(message=f"{key} must be a boolean, got '{raw}'", config_key=key)


def _parse_strategy(env: Mapping[str, str], key: str, default: InfoStrategy) -> InfoStrategy:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return InfoStrategy(raw.strip().lower())
    except ValueError as e:
        raise ConfigurationError(
            message=f"{key} must be one of {[s.value for s in InfoStrategy]}, got '{raw}'",
            config_key=key,
            original_error=e,
        ) from e


def _rpc_overrides(env: Mapping[str, str]) -> dict[str, str]:
    overrides = {}
    for key, value in env.items():
        # TOKEN_EXPORT_RPC_TIMEOUT shares the prefix
        if not key.startswith(RPC_ENV_PREFIX) or key == f"{ENV_PREFIX}RPC_TIMEOUT":
            continue
        chain_id = key[len(RPC_ENV_PREFIX):].lower().replace("_", "-")
        if chain_id and value.strip():
            overrides[chain_id] = value.strip()
    return overrides
