"""
Adapters package for the YApi service.

Contains the HTTP client for the remote YApi platform. The adapter
encapsulates:

- Base URL, timeout and request shapes
- Authentication (project token or username/password session)
- Envelope validation that maps to shared errors
- Read caching with explicit invalidation on writes
"""

from .yapi_client import YApiClient, cache_key

__all__ = ["YApiClient", "cache_key"]
