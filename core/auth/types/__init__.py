"""
core/auth/types - 인증 타입

Usage:
    from core.auth.types import ScopedCredentials
"""

from .types import EXPIRY_SKEW, ScopedCredentials

__all__ = [
    "EXPIRY_SKEW",
    "ScopedCredentials",
]
