"""
YApi service caching package.

In-process read cache used by the YApi client to avoid repeated round
trips to the remote platform. Entries expire after a fixed TTL and are
dropped explicitly by writes that can change them.
"""

from .ttl_cache import CacheEntry, ExpiringCache

__all__ = ["CacheEntry", "ExpiringCache"]
