"""dgraph-acl exception hierarchy."""

from __future__ import annotations


class AclToolError(Exception):
    """Base exception for all dgraph-acl errors."""


class ConfigError(AclToolError):
    """Raised when the effective configuration cannot be resolved."""


class MissingRequired(ConfigError):
    """Raised when a mandatory setting resolves to an empty value."""

    def __init__(self, setting: str, env_var: str = "", fallback_env_var: str = "") -> None:
        self.setting = setting
        self.env_var = env_var
        self.fallback_env_var = fallback_env_var
        hint = ""
        if env_var:
            names = f"{env_var} or {fallback_env_var}" if fallback_env_var else env_var
            hint = f" (flag --{setting} or env {names})"
        super().__init__(f"the {setting} option must be set{hint}")


class InvalidPermission(ConfigError):
    """Raised when a permission value is not an integer in [0, 7]."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"invalid permission {value!r}: expected an integer from 0 to 7")


class ClientError(AclToolError):
    """Raised when the cluster client cannot be built or used."""


class NoEndpoints(ClientError):
    """Raised when the endpoint list is empty after splitting."""

    def __init__(self) -> None:
        super().__init__("no Dgraph endpoints given")


class ConnectionSetupFailed(ClientError):
    """Raised when a connection to one endpoint cannot be opened."""

    def __init__(self, endpoint: str, reason: str) -> None:
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"cannot connect to Dgraph alpha at {endpoint}: {reason}")


class ClientClosed(ClientError):
    """Raised when a closed logical client is asked for a transaction."""


class RemoteRejected(AclToolError):
    """Raised when the cluster declines a request."""
