"""
Command dispatcher — runs exactly one verb per invocation.

Stages::

    IDLE -> VERB_SELECTED -> CONFIG_RESOLVED -> CLIENT_READY
         -> TRANSACTION_ISSUED -> DONE (success | failure)

Any error ends the invocation in DONE with a failure; nothing is retried.
Failures are logged at ERROR unless the caller reports them itself and
asks for a lower level.
The logical client is closed on every path out of CLIENT_READY.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from dgraph_acl.acl import operations
from dgraph_acl.client.builder import build_client
from dgraph_acl.client.logical import LogicalClient
from dgraph_acl.core.config import EffectiveConfig, TLSPolicy, resolve_config
from dgraph_acl.core.constants import ExitCode
from dgraph_acl.core.exceptions import AclToolError
from dgraph_acl.core.verbs import Verb

logger = logging.getLogger(__name__)

HANDLERS: dict[Verb, operations.Operation] = {
    Verb.USER_ADD: operations.user_add,
    Verb.USER_DELETE: operations.user_delete,
    Verb.LOGIN: operations.login,
    Verb.GROUP_ADD: operations.group_add,
    Verb.GROUP_DELETE: operations.group_delete,
    Verb.USER_MODIFY_GROUPS: operations.user_modify_groups,
    Verb.GROUP_MODIFY_PERMISSION: operations.group_modify_permission,
}


class Stage(Enum):
    IDLE = "idle"
    VERB_SELECTED = "verb_selected"
    CONFIG_RESOLVED = "config_resolved"
    CLIENT_READY = "client_ready"
    TRANSACTION_ISSUED = "transaction_issued"
    DONE = "done"


class Invocation:
    """
    One run of one verb.

    Usage::

        invocation = Invocation(Verb.USER_ADD, {"user": "alice", "password": "s3cret"})
        code = invocation.run()
        if invocation.succeeded:
            print(invocation.result)
    """

    def __init__(
        self,
        verb: Verb | str,
        flags: Mapping[str, Any],
        environ: Mapping[str, str] | None = None,
        connect: Callable[[tuple[str, ...], TLSPolicy], LogicalClient] | None = None,
        failure_log_level: int = logging.ERROR,
    ) -> None:
        self.verb = Verb(verb)
        self._flags = dict(flags)
        self._environ = environ
        self._connect = connect
        self._failure_log_level = failure_log_level
        self.stage = Stage.IDLE
        self.config: EffectiveConfig | None = None
        self.result: dict[str, Any] | None = None
        self.error: AclToolError | None = None
        self._advance(Stage.VERB_SELECTED)

    @property
    def succeeded(self) -> bool:
        return self.stage is Stage.DONE and self.error is None

    def _advance(self, stage: Stage) -> None:
        logger.debug("%s: %s -> %s", self.verb, self.stage.value, stage.value)
        self.stage = stage

    def run(self) -> ExitCode:
        if self.stage is not Stage.VERB_SELECTED:
            raise RuntimeError(f"invocation of {self.verb} has already run")

        connect = self._connect or build_client
        handler = HANDLERS[self.verb]
        try:
            self.config = resolve_config(self.verb, self._flags, self._environ)
            self._advance(Stage.CONFIG_RESOLVED)

            with connect(self.config.endpoints, self.config.tls) as client:
                self._advance(Stage.CLIENT_READY)
                self._advance(Stage.TRANSACTION_ISSUED)
                self.result = handler(client, self.config)
        except AclToolError as exc:
            self.error = exc
            self._advance(Stage.DONE)
            logger.log(
                self._failure_log_level,
                "%s failed (%s): %s",
                self.verb,
                type(exc).__name__,
                exc,
            )
            return ExitCode.ERROR

        self._advance(Stage.DONE)
        return ExitCode.SUCCESS
