"""
Shared error handling for the YApi MCP Access Layer.
"""

from typing import Dict, Any, Optional


class YApiAccessError(Exception):
    """Base exception for the access layer."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(YApiAccessError):
    """Invalid or incomplete settings, raised before any network activity."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class AuthenticationError(YApiAccessError):
    """Authentication-related errors."""

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class RemoteApiError(YApiAccessError):
    """The remote platform answered with a nonzero error code."""

    def __init__(self, message: str, errcode: int, details: Optional[Dict[str, Any]] = None):
        self.errcode = errcode
        merged = {"errcode": errcode}
        merged.update(details or {})
        super().__init__("REMOTE_API_ERROR", message, merged)


class TransportError(YApiAccessError):
    """Network, timeout or malformed-response failures."""

    def __init__(self, detail: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_ERROR", f"YApi API request failed: {detail}", details)


class ValidationError(YApiAccessError):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)
