"""dgraph-acl constants: exit codes, defaults, and limits."""

from __future__ import annotations

from enum import IntEnum

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

ENV_PREFIX = "DGRAPH_ACL"  # parent prefix; verbs use DGRAPH_ACL_<VERB>
DEFAULT_DGRAPH_ENDPOINT = "127.0.0.1:9080"
ENDPOINT_SEPARATOR = ","
DEFAULT_LOG_LEVEL = "WARNING"

# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------

DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0  # wait for each endpoint to become ready
GRPC_MAX_MESSAGE_BYTES = 2**31 - 1

# ---------------------------------------------------------------------------
# ACL schema on the cluster
# ---------------------------------------------------------------------------

XID_PREDICATE = "dgraph.xid"
PASSWORD_PREDICATE = "dgraph.password"
USER_GROUP_PREDICATE = "dgraph.user.group"
GROUP_ACL_PREDICATE = "dgraph.group.acl"
TYPE_PREDICATE = "dgraph.type"
USER_TYPE = "User"
GROUP_TYPE = "Group"
