"""
core/org - AWS Organizations 트리 탐색

Usage:
    from core.org import OrganizationsClient, OrgTreeWalker

    org = OrganizationsClient(session)
    info = org.describe_organization()
    for node in OrgTreeWalker(org, store, ["s3"]).walk(org.get_root()):
        ...
"""

from .client import OrganizationsClient
from .types import ROOT_OU_NAME, NodeKind, OrganizationInfo, OrgNode
from .walker import OrgTreeWalker

__all__ = [
    "NodeKind",
    "OrgNode",
    "OrganizationInfo",
    "OrganizationsClient",
    "OrgTreeWalker",
    "ROOT_OU_NAME",
]
