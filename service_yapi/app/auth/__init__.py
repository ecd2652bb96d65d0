"""
Authentication strategies for the YApi service.
"""

from .strategies import AuthStrategy, CredentialAuth, NoAuth, TokenAuth, select_auth

__all__ = ["AuthStrategy", "CredentialAuth", "NoAuth", "TokenAuth", "select_auth"]
