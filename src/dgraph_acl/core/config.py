"""dgraph-acl configuration: settings resolution and Pydantic models."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from dgraph_acl.core.constants import DEFAULT_LOG_LEVEL, ENDPOINT_SEPARATOR, ENV_PREFIX
from dgraph_acl.core.exceptions import ConfigError, MissingRequired
from dgraph_acl.core.permissions import parse_permission

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class LoggingConfig(BaseModel):
    level: str = DEFAULT_LOG_LEVEL

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {sorted(allowed)}")
        return v.upper()


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> LoggingConfig:
    """Send log records to stderr at *level*; raises ConfigError for unknown levels."""
    try:
        cfg = LoggingConfig(level=level)
    except Exception as exc:
        raise ConfigError(f"Invalid log level {level!r}") from exc
    logging.basicConfig(
        level=cfg.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )
    return cfg


# ---------------------------------------------------------------------------
# Declared settings and their resolution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Setting:
    """One named option a command accepts."""

    name: str
    short: str | None = None
    default: Any = None
    required: bool = False
    kind: str = "str"  # "str" | "bool"
    help: str = ""


def env_var(prefix: str, name: str) -> str:
    return f"{prefix}_{name}".upper().replace("-", "_")


def split_list(value: str | None) -> list[str]:
    """Split a comma-separated value, trimming items and dropping empty ones."""
    if not value:
        return []
    return [item.strip() for item in value.split(ENDPOINT_SEPARATOR) if item.strip()]


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {value!r}")


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def resolve_settings(
    settings: Iterable[Setting],
    flags: Mapping[str, Any],
    env_prefix: str,
    *,
    parent: Iterable[Setting] = (),
    parent_env_prefix: str = "",
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """
    Resolve every declared setting to one value.

    Priority (highest to lowest):
      1. Explicit command-line flag
      2. Command environment variable (<env_prefix>_<NAME>)
      3. Parent environment variable (<parent_env_prefix>_<NAME>), parent settings only
      4. Command-specific default (*overrides*, or the command setting's default)
      5. Parent default
    """
    env = os.environ if environ is None else environ
    overrides = overrides or {}
    declared: list[tuple[Setting, bool]] = [(s, True) for s in parent]
    declared += [(s, False) for s in settings]

    values: dict[str, Any] = {}
    for setting, inherited in declared:
        name = setting.name
        value = flags.get(name)
        if value is None:
            value = env.get(env_var(env_prefix, name))
        if value is None and inherited and parent_env_prefix:
            value = env.get(env_var(parent_env_prefix, name))
        if value is None:
            value = overrides.get(name, setting.default)

        if setting.required and _is_empty(value):
            fallback = env_var(parent_env_prefix, name) if inherited and parent_env_prefix else ""
            raise MissingRequired(name, env_var(env_prefix, name), fallback)
        if setting.kind == "bool":
            value = _parse_bool(name, False if value is None else value)
        values[name] = value
    return values


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TLSPolicy(BaseModel):
    """TLS settings shared by every endpoint of one invocation."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    cert: str = ""
    key: str = ""
    ca_certs: str = ""
    server_name: str = ""

    @model_validator(mode="after")
    def cert_and_key_together(self) -> TLSPolicy:
        if bool(self.cert) != bool(self.key):
            raise ValueError("tls_cert and tls_cert_key must be given together")
        return self


class EffectiveConfig(BaseModel):
    """Settings for one command invocation. Immutable once resolved."""

    model_config = ConfigDict(frozen=True)

    verb: str
    endpoints: tuple[str, ...] = Field(min_length=1)
    tls: TLSPolicy = Field(default_factory=TLSPolicy)
    user: str | None = None
    password: SecretStr | None = None
    group: str | None = None
    groups: tuple[str, ...] = ()
    predicate: str | None = None
    permission: int | None = None

    @classmethod
    def from_settings(cls, verb: str, values: Mapping[str, Any]) -> EffectiveConfig:
        endpoints = split_list(values.get("dgraph"))
        if not endpoints:
            raise MissingRequired(
                "dgraph",
                env_var(f"{ENV_PREFIX}_{verb}", "dgraph"),
                env_var(ENV_PREFIX, "dgraph"),
            )
        groups = split_list(values.get("groups"))
        if verb == "usermod" and not groups:
            raise MissingRequired("groups", env_var(f"{ENV_PREFIX}_USERMOD", "groups"))

        permission = None
        if values.get("perm") is not None:
            permission = parse_permission(values["perm"])

        data: dict[str, Any] = {
            "verb": verb,
            "endpoints": tuple(endpoints),
            "tls": {
                "enabled": values.get("tls_on", False),
                "cert": values.get("tls_cert") or "",
                "key": values.get("tls_cert_key") or "",
                "ca_certs": values.get("tls_ca_certs") or "",
                "server_name": values.get("tls_server_name") or "",
            },
            "user": values.get("user"),
            "password": values.get("password"),
            "group": values.get("group"),
            "groups": tuple(groups),
            "predicate": values.get("pred"),
            "permission": permission,
        }
        try:
            return cls.model_validate(data)
        except Exception as exc:
            raise ConfigError(f"Invalid configuration for {verb}: {exc}") from exc


def resolve_config(
    verb: str,
    flags: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> EffectiveConfig:
    """Resolve the effective configuration of *verb* from flags and environment."""
    from dgraph_acl.core.verbs import PARENT_SETTINGS, get_verb_spec

    spec = get_verb_spec(verb)
    values = resolve_settings(
        spec.settings,
        flags,
        spec.env_prefix,
        parent=PARENT_SETTINGS,
        parent_env_prefix=spec.parent_env_prefix,
        overrides=spec.default_overrides,
        environ=environ,
    )
    return EffectiveConfig.from_settings(str(spec.verb), values)
