"""
LogicalClient — one client handle over several Dgraph alpha connections.

The client owns every member stub and releases them together. Requests are
routed round-robin starting at the first member; a transaction stays on the
member it was opened against for its whole lifetime.

Usage::

    with build_client(["alpha1:9080", "alpha2:9080"], tls) as client:
        txn = client.txn()
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import pydgraph
from pydgraph.proto import api_pb2 as api

from dgraph_acl.core.exceptions import ClientClosed, NoEndpoints

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Member:
    """One live connection of the logical client."""

    endpoint: str
    stub: Any  # pydgraph.DgraphClientStub


class LogicalClient:
    def __init__(self, members: Sequence[Member]) -> None:
        if not members:
            raise NoEndpoints()
        self._members = list(members)
        self._cursor = 0
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> LogicalClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close every member connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        for member in self._members:
            try:
                member.stub.close()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Error closing connection to %s: %s", member.endpoint, exc)
        logger.debug("Closed %d Dgraph connection(s)", len(self._members))

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def endpoints(self) -> list[str]:
        return [m.endpoint for m in self._members]

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def _next_member(self) -> Member:
        if self._closed:
            raise ClientClosed("the Dgraph client has been closed")
        member = self._members[self._cursor % len(self._members)]
        self._cursor += 1
        return member

    def txn(self, read_only: bool = False) -> pydgraph.Txn:
        """Open a transaction bound to the next member."""
        member = self._next_member()
        logger.debug("Opening transaction on %s", member.endpoint)
        return pydgraph.DgraphClient(member.stub).txn(read_only=read_only)

    def login(self, userid: str, password: str) -> api.Jwt:
        """Exchange credentials for an access/refresh JWT pair."""
        member = self._next_member()
        logger.debug("Logging in as %s on %s", userid, member.endpoint)
        request = api.LoginRequest(userid=userid, password=password)
        response = member.stub.login(request)
        jwt = api.Jwt()
        jwt.ParseFromString(response.json)
        return jwt
