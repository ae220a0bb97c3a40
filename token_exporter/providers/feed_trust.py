"""
Feed-trust provider: the feed record is the source of truth.
"""

from token_exporter.models import CanonicalAddress, TargetChain, TokenFields
from token_exporter.providers.base import TokenInfoProvider


class FeedTrustProvider(TokenInfoProvider):
    """Returns the feed's own symbol, name and decimals. Never fails."""

    @property
    def name(self) -> str:
        return "feed"

    async def fetch(
        self,
        chain: TargetChain,
        address: CanonicalAddress,
        fallback: TokenFields,
    ) -> TokenFields:
        return fallback
