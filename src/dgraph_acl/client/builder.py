"""
Secure multi-endpoint client builder.

``build_client`` opens one gRPC connection per endpoint, all with the same
TLS policy, and wraps them in a LogicalClient. Every member must be live
when the client is returned: the first endpoint that cannot be reached
fails the whole build and any connection already opened is closed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

import grpc
import pydgraph

from dgraph_acl.client.logical import LogicalClient, Member
from dgraph_acl.core.config import TLSPolicy, split_list
from dgraph_acl.core.constants import DEFAULT_CONNECT_TIMEOUT_SECONDS, GRPC_MAX_MESSAGE_BYTES
from dgraph_acl.core.exceptions import ConnectionSetupFailed, NoEndpoints

logger = logging.getLogger(__name__)

Connector = Callable[[str, TLSPolicy, float], "pydgraph.DgraphClientStub"]


def split_endpoints(endpoints: str | Sequence[str]) -> list[str]:
    """Split comma-separated endpoints, trimming whitespace and dropping blanks."""
    if isinstance(endpoints, str):
        endpoints = [endpoints]
    result: list[str] = []
    for item in endpoints:
        result.extend(split_list(item))
    return result


def _read(path: str) -> bytes:
    return Path(path).expanduser().read_bytes()


def channel_credentials(tls: TLSPolicy) -> grpc.ChannelCredentials:
    """Build channel credentials from the TLS policy's files."""
    root = _read(tls.ca_certs) if tls.ca_certs else None
    if tls.cert and tls.key:
        return grpc.ssl_channel_credentials(
            root_certificates=root,
            private_key=_read(tls.key),
            certificate_chain=_read(tls.cert),
        )
    return grpc.ssl_channel_credentials(root_certificates=root)


def channel_options(tls: TLSPolicy) -> list[tuple[str, object]]:
    options: list[tuple[str, object]] = [
        ("grpc.max_receive_message_length", GRPC_MAX_MESSAGE_BYTES),
        ("grpc.max_send_message_length", GRPC_MAX_MESSAGE_BYTES),
    ]
    if tls.enabled and tls.server_name:
        options.append(("grpc.ssl_target_name_override", tls.server_name))
    return options


def open_stub(
    endpoint: str,
    tls: TLSPolicy,
    timeout: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
) -> pydgraph.DgraphClientStub:
    """Open one connection and wait until it is ready."""
    try:
        credentials = channel_credentials(tls) if tls.enabled else None
    except OSError as exc:
        raise ConnectionSetupFailed(endpoint, f"cannot load TLS files: {exc}") from exc

    stub = pydgraph.DgraphClientStub(
        endpoint, credentials=credentials, options=channel_options(tls)
    )
    try:
        grpc.channel_ready_future(stub.channel).result(timeout=timeout)
    except grpc.FutureTimeoutError as exc:
        stub.close()
        raise ConnectionSetupFailed(endpoint, f"not ready after {timeout:g}s") from exc
    logger.debug("Connected to %s (tls=%s)", endpoint, tls.enabled)
    return stub


def build_client(
    endpoints: str | Sequence[str],
    tls: TLSPolicy,
    *,
    connect: Connector = open_stub,
    timeout: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
) -> LogicalClient:
    """Open every endpoint with *tls* and return them as one LogicalClient."""
    addresses = split_endpoints(endpoints)
    if not addresses:
        raise NoEndpoints()
    logger.info("Running transaction with dgraph endpoint: %s", ",".join(addresses))

    members: list[Member] = []
    try:
        for address in addresses:
            try:
                stub = connect(address, tls, timeout)
            except ConnectionSetupFailed:
                raise
            except Exception as exc:
                raise ConnectionSetupFailed(address, str(exc)) from exc
            members.append(Member(endpoint=address, stub=stub))
    except ConnectionSetupFailed as exc:
        logger.warning(
            "Connection setup failed for %s, closing %d opened connection(s)",
            exc.endpoint,
            len(members),
        )
        if members:
            LogicalClient(members).close()
        raise
    return LogicalClient(members)
