"""
ACL operations — one cluster transaction per command.

Each operation reads what it needs to validate the request, then applies a
single mutation committed immediately. Users and groups are nodes keyed by
``dgraph.xid``; membership is the ``dgraph.user.group`` edge and a group's
predicate permissions live in ``dgraph.group.acl`` as a JSON list::

    [{"predicate": "name", "perm": 6}, {"predicate": "email", "perm": 4}]
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import grpc
from pydgraph import errors

from dgraph_acl.client.logical import LogicalClient
from dgraph_acl.core.config import EffectiveConfig
from dgraph_acl.core.constants import (
    GROUP_ACL_PREDICATE,
    GROUP_TYPE,
    PASSWORD_PREDICATE,
    TYPE_PREDICATE,
    USER_GROUP_PREDICATE,
    USER_TYPE,
    XID_PREDICATE,
)
from dgraph_acl.core.exceptions import RemoteRejected
from dgraph_acl.core.permissions import decode

logger = logging.getLogger(__name__)

Operation = Callable[[LogicalClient, EffectiveConfig], dict[str, Any]]

USER_QUERY = f"""
query search($userid: string) {{
  user(func: eq({XID_PREDICATE}, $userid)) @filter(type({USER_TYPE})) {{
    uid
    {XID_PREDICATE}
    {USER_GROUP_PREDICATE} {{
      uid
      {XID_PREDICATE}
    }}
  }}
}}
"""

GROUP_QUERY = f"""
query search($groupid: string) {{
  group(func: eq({XID_PREDICATE}, $groupid)) @filter(type({GROUP_TYPE})) {{
    uid
    {XID_PREDICATE}
    {GROUP_ACL_PREDICATE}
  }}
}}
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _rpc_detail(exc: grpc.RpcError) -> str:
    details = getattr(exc, "details", None)
    if callable(details):
        return details() or str(exc)
    return str(exc)


@contextmanager
def _transaction(client: LogicalClient, verb: str) -> Iterator[Any]:
    """Open a transaction; remote failures surface as RemoteRejected."""
    txn = client.txn()
    try:
        yield txn
    except grpc.RpcError as exc:
        raise RemoteRejected(f"{verb} rejected by Dgraph: {_rpc_detail(exc)}") from exc
    except errors.AbortedError as exc:
        raise RemoteRejected(f"{verb} transaction was aborted by Dgraph") from exc
    except errors.RetriableError as exc:
        raise RemoteRejected(f"{verb} was not applied, Dgraph asked to retry: {exc}") from exc
    except errors.ConnectionError as exc:
        raise RemoteRejected(f"{verb} lost its connection to Dgraph: {exc}") from exc
    finally:
        txn.discard()


def _query_one(txn: Any, query: str, variables: dict[str, str], key: str) -> dict[str, Any] | None:
    response = txn.query(query, variables=variables)
    nodes = json.loads(response.json).get(key) or []
    return nodes[0] if nodes else None


def _find_user(txn: Any, userid: str) -> dict[str, Any] | None:
    return _query_one(txn, USER_QUERY, {"$userid": userid}, "user")


def _find_group(txn: Any, groupid: str) -> dict[str, Any] | None:
    return _query_one(txn, GROUP_QUERY, {"$groupid": groupid}, "group")


def _parse_acls(raw: str | None, groupid: str) -> list[dict[str, Any]]:
    if not raw:
        return []
    try:
        acls = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RemoteRejected(f"group {groupid!r} has a malformed acl: {exc}") from exc
    if not isinstance(acls, list):
        raise RemoteRejected(f"group {groupid!r} has a malformed acl: expected a list")
    return acls


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def user_add(client: LogicalClient, config: EffectiveConfig) -> dict[str, Any]:
    userid = config.user or ""
    password = config.password.get_secret_value() if config.password else ""
    with _transaction(client, "useradd") as txn:
        if _find_user(txn, userid) is not None:
            raise RemoteRejected(
                f"Unable to create user because of conflict: {userid!r} already exists"
            )
        response = txn.mutate(
            set_obj={
                "uid": "_:newuser",
                XID_PREDICATE: userid,
                PASSWORD_PREDICATE: password,
                TYPE_PREDICATE: USER_TYPE,
            },
            commit_now=True,
        )
    uid = dict(response.uids).get("newuser", "")
    logger.info("Created new user %s with uid %s", userid, uid)
    return {"user": userid, "uid": uid}


def user_delete(client: LogicalClient, config: EffectiveConfig) -> dict[str, Any]:
    userid = config.user or ""
    with _transaction(client, "userdel") as txn:
        user = _find_user(txn, userid)
        if user is None:
            raise RemoteRejected(f"Unable to delete user because it does not exist: {userid!r}")
        txn.mutate(del_nquads=f"<{user['uid']}> * * .", commit_now=True)
    logger.info("Deleted user %s", userid)
    return {"user": userid, "uid": user["uid"]}


def login(client: LogicalClient, config: EffectiveConfig) -> dict[str, Any]:
    userid = config.user or ""
    password = config.password.get_secret_value() if config.password else ""
    try:
        jwt = client.login(userid, password)
    except grpc.RpcError as exc:
        raise RemoteRejected(f"login rejected by Dgraph: {_rpc_detail(exc)}") from exc
    logger.info("Logged in as %s", userid)
    return {"user": userid, "access_jwt": jwt.access_jwt, "refresh_jwt": jwt.refresh_jwt}


def user_modify_groups(client: LogicalClient, config: EffectiveConfig) -> dict[str, Any]:
    """Make the user's groups exactly ``config.groups``."""
    userid = config.user or ""
    target = list(dict.fromkeys(config.groups))
    with _transaction(client, "usermod") as txn:
        user = _find_user(txn, userid)
        if user is None:
            raise RemoteRejected(f"user {userid!r} does not exist")

        memberships = user.get(USER_GROUP_PREDICATE) or []
        current = {g[XID_PREDICATE]: g["uid"] for g in memberships if g.get(XID_PREDICATE)}
        # Edges left behind by a deleted group point at nodes without an xid.
        dangling = [g["uid"] for g in memberships if not g.get(XID_PREDICATE)]
        to_add = [g for g in target if g not in current]
        to_remove = [g for g in current if g not in target]
        if not to_add and not to_remove and not dangling:
            logger.info("Groups of user %s are already %s", userid, target)
            return {"user": userid, "added": [], "removed": [], "dropped": [], "groups": target}

        added_uids = []
        for groupid in to_add:
            group = _find_group(txn, groupid)
            if group is None:
                raise RemoteRejected(f"group {groupid!r} does not exist")
            added_uids.append(group["uid"])

        set_obj = None
        if added_uids:
            set_obj = {"uid": user["uid"], USER_GROUP_PREDICATE: [{"uid": u} for u in added_uids]}
        removed_uids = [current[g] for g in to_remove] + dangling
        del_obj = None
        if removed_uids:
            del_obj = {
                "uid": user["uid"],
                USER_GROUP_PREDICATE: [{"uid": u} for u in removed_uids],
            }
        txn.mutate(set_obj=set_obj, del_obj=del_obj, commit_now=True)

    if dangling:
        logger.info("User %s: dropped edges to deleted groups %s", userid, dangling)
    logger.info("User %s: added groups %s, removed groups %s", userid, to_add, to_remove)
    return {
        "user": userid,
        "added": to_add,
        "removed": to_remove,
        "dropped": dangling,
        "groups": target,
    }


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def group_add(client: LogicalClient, config: EffectiveConfig) -> dict[str, Any]:
    groupid = config.group or ""
    with _transaction(client, "groupadd") as txn:
        if _find_group(txn, groupid) is not None:
            raise RemoteRejected(
                f"Unable to create group because of conflict: {groupid!r} already exists"
            )
        response = txn.mutate(
            set_obj={"uid": "_:newgroup", XID_PREDICATE: groupid, TYPE_PREDICATE: GROUP_TYPE},
            commit_now=True,
        )
    uid = dict(response.uids).get("newgroup", "")
    logger.info("Created new group %s with uid %s", groupid, uid)
    return {"group": groupid, "uid": uid}


def group_delete(client: LogicalClient, config: EffectiveConfig) -> dict[str, Any]:
    groupid = config.group or ""
    with _transaction(client, "groupdel") as txn:
        group = _find_group(txn, groupid)
        if group is None:
            raise RemoteRejected(f"Unable to delete group because it does not exist: {groupid!r}")
        txn.mutate(del_nquads=f"<{group['uid']}> * * .", commit_now=True)
    logger.info("Deleted group %s", groupid)
    return {"group": groupid, "uid": group["uid"]}


def group_modify_permission(client: LogicalClient, config: EffectiveConfig) -> dict[str, Any]:
    """Set the group's permission on one predicate, keeping its other entries."""
    groupid = config.group or ""
    predicate = config.predicate or ""
    perm = config.permission if config.permission is not None else 0
    rights = decode(perm)

    with _transaction(client, "chmod") as txn:
        group = _find_group(txn, groupid)
        if group is None:
            raise RemoteRejected(f"group {groupid!r} does not exist")

        acls = _parse_acls(group.get(GROUP_ACL_PREDICATE), groupid)
        for entry in acls:
            if entry.get("predicate") == predicate:
                entry["perm"] = perm
                break
        else:
            acls.append({"predicate": predicate, "perm": perm})

        txn.mutate(
            set_obj={"uid": group["uid"], GROUP_ACL_PREDICATE: json.dumps(acls)},
            commit_now=True,
        )

    logger.info("Set %s (%d) on predicate %s for group %s", rights, perm, predicate, groupid)
    return {"group": groupid, "predicate": predicate, "permission": perm, "rights": rights}
