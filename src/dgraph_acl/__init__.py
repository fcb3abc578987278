"""
dgraph-acl — access-control administration for a Dgraph cluster.

Creates and removes users and groups, sets group membership, and grants
predicate-level permissions through the cluster's gRPC API. Enforcement of
the rules happens inside the cluster; this package only writes them.

Package layout (src/dgraph_acl/):
  core/    — constants, exceptions, permission codec, configuration resolver
  client/  — secure multi-endpoint client builder and the logical client
  acl/     — one-transaction operations behind each command
  cli/     — Click CLI entry point and command dispatcher
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
