"""Dgraph cluster client: multi-endpoint builder and logical client."""

from __future__ import annotations

from dgraph_acl.client.builder import build_client, open_stub, split_endpoints
from dgraph_acl.client.logical import LogicalClient, Member

__all__ = ["LogicalClient", "Member", "build_client", "open_stub", "split_endpoints"]
