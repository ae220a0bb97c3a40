from token_exporter.providers.base import TokenInfoProvider
from token_exporter.providers.feed_trust import FeedTrustProvider
from token_exporter.providers.live_verify import LiveVerifyProvider
from token_exporter.providers.rpc_client import JsonRpcClient

__all__ = [
    "FeedTrustProvider",
    "JsonRpcClient",
    "LiveVerifyProvider",
    "TokenInfoProvider",
]
