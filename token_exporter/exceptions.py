"""
Token Exporter Exceptions - Custom exception hierarchy.

Every per-item error is caught at the pipeline item boundary and turned
into a FAILED result. Only FeedFetchError is allowed to reach the caller.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Failure categories recorded on failed items."""
    INVALID_ADDRESS = "invalid_address"
    UNKNOWN_CHAIN = "unknown_chain"
    INFO_UNAVAILABLE = "info_unavailable"
    IO_FAILURE = "io_failure"
    FEED_FETCH = "feed_fetch"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class TokenExportError(Exception):
    """Base exception for all token exporter errors."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        address: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.chain = chain
        self.address = address
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "chain": self.chain,
            "address": self.address,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.chain:
            parts.append(f"[chain={self.chain}]")
        if self.address:
            parts.append(f"[address={self.address}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class InvalidAddressError(TokenExportError):
    """Address text is malformed or fails its checksum."""

    kind = ErrorKind.INVALID_ADDRESS

    def __init__(
        self,
        message: str,
        raw_address: Optional[str] = None,
        chain: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain, raw_address, original_error, context)
        self.raw_address = raw_address


class UnknownChainError(TokenExportError):
    """Source chain identifier has no entry in the chain table."""

    kind = ErrorKind.UNKNOWN_CHAIN

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        supported_chains: Optional[list[str]] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain, None, original_error, context)
        self.supported_chains = supported_chains or []

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["supported_chains"] = self.supported_chains
        return data


class RpcCallError(TokenExportError):
    """A single JSON-RPC call failed (transport, RPC error or bad payload)."""

    kind = ErrorKind.INFO_UNAVAILABLE

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        address: Optional[str] = None,
        rpc_method: Optional[str] = None,
        status_code: Optional[int] = None,
        rpc_error: Optional[Any] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain, address, original_error, context)
        self.rpc_method = rpc_method
        self.status_code = status_code
        self.rpc_error = rpc_error

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "rpc_method": self.rpc_method,
            "status_code": self.status_code,
            "rpc_error": self.rpc_error,
        })
        return data


class InfoUnavailableError(TokenExportError):
    """Authoritative token fields could not be resolved."""

    kind = ErrorKind.INFO_UNAVAILABLE

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        address: Optional[str] = None,
        failed_reads: Optional[list[str]] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain, address, original_error, context)
        self.failed_reads = failed_reads or []

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["failed_reads"] = self.failed_reads
        return data


class OutputWriteError(TokenExportError):
    """Writing a token file failed."""

    kind = ErrorKind.IO_FAILURE

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        chain: Optional[str] = None,
        address: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain, address, original_error, context)
        self.path = path

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["path"] = self.path
        return data


class FeedFetchError(TokenExportError):
    """The token feed could not be retrieved or parsed. Fatal for the run."""

    kind = ErrorKind.FEED_FETCH

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, None, None, original_error, context)
        self.url = url
        self.status_code = status_code
        self.response_body = response_body

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "url": self.url,
            "status_code": self.status_code,
            "response_body": self.response_body,
        })
        return data


class ConfigurationError(TokenExportError):
    """Invalid exporter configuration."""

    kind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        errors: Optional[list[str]] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, None, None, original_error, context)
        self.config_key = config_key
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["config_key"] = self.config_key
        data["errors"] = self.errors
        return data
