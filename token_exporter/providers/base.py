"""
Token Info Provider - Interface for resolving authoritative token fields.
"""

from abc import ABC, abstractmethod

from token_exporter.models import CanonicalAddress, TargetChain, TokenFields


class TokenInfoProvider(ABC):
    """
    Resolves {decimals, symbol, name} for a token on a chain.

    Implementations raise InfoUnavailableError instead of returning
    partial fields. They never retry.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this provider."""
        pass

    @abstractmethod
    async def fetch(
        self,
        chain: TargetChain,
        address: CanonicalAddress,
        fallback: TokenFields,
    ) -> TokenFields:
        """
        Resolve token fields.

        Args:
            chain: Resolved target chain
            address: Canonical token address
            fallback: Fields carried by the feed record

        Returns:
            Complete TokenFields

        Raises:
            InfoUnavailableError: If the fields cannot be resolved
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"
