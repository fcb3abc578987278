"""
Command verbs and the settings each one declares.

Every verb inherits the parent settings (endpoint list and TLS) and adds
its own. Environment variables are looked up with a per-verb prefix,
``DGRAPH_ACL_<VERB>_<NAME>``, and parent settings fall back to
``DGRAPH_ACL_<NAME>``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from dgraph_acl.core.config import Setting
from dgraph_acl.core.constants import DEFAULT_DGRAPH_ENDPOINT, ENV_PREFIX


class Verb(StrEnum):
    """The administrative verbs; exactly one runs per invocation."""

    USER_ADD = "useradd"
    USER_DELETE = "userdel"
    LOGIN = "login"
    GROUP_ADD = "groupadd"
    GROUP_DELETE = "groupdel"
    USER_MODIFY_GROUPS = "usermod"
    GROUP_MODIFY_PERMISSION = "chmod"


PARENT_SETTINGS: tuple[Setting, ...] = (
    Setting(
        "dgraph",
        short="d",
        default=DEFAULT_DGRAPH_ENDPOINT,
        required=True,
        help="Comma-separated Dgraph alpha gRPC addresses",
    ),
    Setting("tls_on", kind="bool", default=False, help="Use TLS for every connection"),
    Setting("tls_cert", default="", help="Client certificate file path"),
    Setting("tls_cert_key", default="", help="Client certificate key file path"),
    Setting("tls_ca_certs", default="", help="CA certificates file path"),
    Setting("tls_server_name", default="", help="Used to verify the server hostname"),
)


@dataclass(frozen=True)
class VerbSpec:
    verb: Verb
    summary: str
    failure: str  # prefix of the message printed when the verb fails
    settings: tuple[Setting, ...] = ()
    default_overrides: dict[str, Any] = field(default_factory=dict)
    parent_env_prefix: str = ENV_PREFIX

    @property
    def env_prefix(self) -> str:
        return f"{ENV_PREFIX}_{self.verb.value.upper()}"


VERBS: dict[Verb, VerbSpec] = {
    Verb.USER_ADD: VerbSpec(
        Verb.USER_ADD,
        summary="Add a user",
        failure="Unable to add user",
        settings=(
            Setting("user", short="u", required=True, help="The user id to be created"),
            Setting("password", short="p", required=True, help="The password for the user"),
        ),
    ),
    Verb.USER_DELETE: VerbSpec(
        Verb.USER_DELETE,
        summary="Delete a user",
        failure="Unable to delete the user",
        settings=(Setting("user", short="u", required=True, help="The user id to be deleted"),),
    ),
    Verb.LOGIN: VerbSpec(
        Verb.LOGIN,
        summary="Log in to Dgraph and print the access and refresh JWTs",
        failure="Unable to login",
        settings=(
            Setting("user", short="u", required=True, help="The user id to log in as"),
            Setting("password", short="p", required=True, help="The password for the user"),
        ),
    ),
    Verb.GROUP_ADD: VerbSpec(
        Verb.GROUP_ADD,
        summary="Add a group",
        failure="Unable to add group",
        settings=(Setting("group", short="g", required=True, help="The group id to be created"),),
    ),
    Verb.GROUP_DELETE: VerbSpec(
        Verb.GROUP_DELETE,
        summary="Delete a group",
        failure="Unable to delete group",
        settings=(Setting("group", short="g", required=True, help="The group id to be deleted"),),
    ),
    Verb.USER_MODIFY_GROUPS: VerbSpec(
        Verb.USER_MODIFY_GROUPS,
        summary="Set the groups a user belongs to",
        failure="Unable to modify user",
        settings=(
            Setting("user", short="u", required=True, help="The user id to be changed"),
            Setting(
                "groups",
                short="g",
                required=True,
                help="Comma-separated groups to be set for the user",
            ),
        ),
    ),
    Verb.GROUP_MODIFY_PERMISSION: VerbSpec(
        Verb.GROUP_MODIFY_PERMISSION,
        summary="Change a group's permission on a predicate",
        failure="Unable to change permission for group",
        settings=(
            Setting(
                "group",
                short="g",
                required=True,
                help="The group whose permission is to be changed",
            ),
            Setting(
                "pred",
                short="p",
                required=True,
                help="The predicate whose acl is to be changed",
            ),
            Setting(
                "perm",
                short="P",
                required=True,
                help="The acl as an integer: 4 read, 2 write, 1 modify (0-7)",
            ),
        ),
    ),
}


def get_verb_spec(verb: str) -> VerbSpec:
    try:
        return VERBS[Verb(verb)]
    except ValueError:
        raise KeyError(f"Unknown verb {verb!r}. Available: {[v.value for v in Verb]}") from None
