"""
core/inventory - 계정 리소스 인벤토리

Usage:
    from core.inventory import ResourceCollector, ResourceKind
"""

from .collector import ResourceCollector
from .services import KIND_FETCHERS, has_resources
from .types import ALL_RESOURCE_KINDS, ResourceKind, ResourceRecord

__all__ = [
    "ALL_RESOURCE_KINDS",
    "KIND_FETCHERS",
    "ResourceCollector",
    "ResourceKind",
    "ResourceRecord",
    "has_resources",
]
