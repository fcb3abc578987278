"""Tests for dgraph_acl.core.config — settings precedence and the effective config."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from dgraph_acl.core.config import (
    EffectiveConfig,
    LoggingConfig,
    Setting,
    TLSPolicy,
    configure_logging,
    env_var,
    resolve_config,
    resolve_settings,
    split_list,
)
from dgraph_acl.core.exceptions import ConfigError, InvalidPermission, MissingRequired
from dgraph_acl.core.verbs import VERBS, Verb

PARENT = (Setting("dgraph", short="d", default="127.0.0.1:9080", required=True),)
OWN = (Setting("user", short="u", required=True),)


# ---------------------------------------------------------------------------
# resolve_settings
# ---------------------------------------------------------------------------


class TestResolveSettingsPrecedence:
    def _resolve(self, flags=None, environ=None, overrides=None):
        return resolve_settings(
            OWN,
            {"user": "alice"} if flags is None else flags,
            "DGRAPH_ACL_USERDEL",
            parent=PARENT,
            parent_env_prefix="DGRAPH_ACL",
            overrides=overrides,
            environ={} if environ is None else environ,
        )

    def test_parent_default(self):
        assert self._resolve()["dgraph"] == "127.0.0.1:9080"

    def test_command_default_beats_parent_default(self):
        values = self._resolve(overrides={"dgraph": "cmd:9080"})
        assert values["dgraph"] == "cmd:9080"

    def test_parent_env_beats_defaults(self):
        values = self._resolve(
            environ={"DGRAPH_ACL_DGRAPH": "parent:9080"},
            overrides={"dgraph": "cmd:9080"},
        )
        assert values["dgraph"] == "parent:9080"

    def test_command_env_beats_parent_env(self):
        values = self._resolve(
            environ={
                "DGRAPH_ACL_DGRAPH": "parent:9080",
                "DGRAPH_ACL_USERDEL_DGRAPH": "10.0.0.1:9080",
            }
        )
        assert values["dgraph"] == "10.0.0.1:9080"

    def test_flag_beats_everything(self):
        values = self._resolve(
            flags={"user": "alice", "dgraph": "a:1,b:2"},
            environ={
                "DGRAPH_ACL_DGRAPH": "parent:9080",
                "DGRAPH_ACL_USERDEL_DGRAPH": "10.0.0.1:9080",
            },
        )
        assert values["dgraph"] == "a:1,b:2"

    def test_none_flag_counts_as_absent(self):
        values = self._resolve(
            flags={"user": "alice", "dgraph": None},
            environ={"DGRAPH_ACL_USERDEL_DGRAPH": "10.0.0.1:9080"},
        )
        assert values["dgraph"] == "10.0.0.1:9080"

    def test_command_setting_from_env(self):
        values = self._resolve(flags={}, environ={"DGRAPH_ACL_USERDEL_USER": "bob"})
        assert values["user"] == "bob"

    def test_command_setting_ignores_parent_env(self):
        with pytest.raises(MissingRequired):
            self._resolve(flags={}, environ={"DGRAPH_ACL_USER": "bob"})


class TestResolveSettingsValidation:
    def test_missing_required(self):
        with pytest.raises(MissingRequired) as excinfo:
            resolve_settings(OWN, {}, "DGRAPH_ACL_USERADD", environ={})
        assert excinfo.value.setting == "user"
        assert excinfo.value.env_var == "DGRAPH_ACL_USERADD_USER"

    def test_blank_required_is_missing(self):
        with pytest.raises(MissingRequired):
            resolve_settings(OWN, {"user": "   "}, "DGRAPH_ACL_USERADD", environ={})

    def test_required_endpoint_blank_in_env(self):
        with pytest.raises(MissingRequired):
            resolve_settings(
                (), {}, "DGRAPH_ACL_LOGIN", parent=PARENT, environ={"DGRAPH_ACL_LOGIN_DGRAPH": ""}
            )

    def test_missing_parent_setting_names_both_env_vars(self):
        with pytest.raises(MissingRequired) as excinfo:
            resolve_settings(
                (),
                {},
                "DGRAPH_ACL_LOGIN",
                parent=PARENT,
                parent_env_prefix="DGRAPH_ACL",
                environ={"DGRAPH_ACL_DGRAPH": " "},
            )
        assert excinfo.value.env_var == "DGRAPH_ACL_LOGIN_DGRAPH"
        assert excinfo.value.fallback_env_var == "DGRAPH_ACL_DGRAPH"
        assert "DGRAPH_ACL_LOGIN_DGRAPH or DGRAPH_ACL_DGRAPH" in str(excinfo.value)

    def test_missing_command_setting_has_no_fallback(self):
        with pytest.raises(MissingRequired) as excinfo:
            resolve_settings(
                OWN, {}, "DGRAPH_ACL_USERDEL", parent_env_prefix="DGRAPH_ACL", environ={}
            )
        assert excinfo.value.fallback_env_var == ""

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("Off", False), ("no", False)])
    def test_bool_parsing(self, raw, expected):
        setting = Setting("tls_on", kind="bool", default=False)
        values = resolve_settings((setting,), {}, "P", environ={"P_TLS_ON": raw})
        assert values["tls_on"] is expected

    def test_bool_default_false(self):
        setting = Setting("tls_on", kind="bool")
        assert resolve_settings((setting,), {}, "P", environ={})["tls_on"] is False

    def test_bad_bool(self):
        setting = Setting("tls_on", kind="bool")
        with pytest.raises(ConfigError):
            resolve_settings((setting,), {}, "P", environ={"P_TLS_ON": "maybe"})


class TestHelpers:
    def test_env_var_upper_and_underscores(self):
        assert env_var("DGRAPH_ACL_CHMOD", "tls-server-name") == "DGRAPH_ACL_CHMOD_TLS_SERVER_NAME"

    def test_split_list(self):
        assert split_list(" a:1 , ,b:2,") == ["a:1", "b:2"]
        assert split_list("") == []
        assert split_list(None) == []


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestTLSPolicy:
    def test_disabled_by_default(self):
        tls = TLSPolicy()
        assert tls.enabled is False
        assert tls.server_name == ""

    def test_cert_without_key_rejected(self):
        with pytest.raises(ValidationError):
            TLSPolicy(enabled=True, cert="client.crt")

    def test_frozen(self):
        tls = TLSPolicy()
        with pytest.raises(ValidationError):
            tls.enabled = True  # type: ignore[misc]


class TestEffectiveConfig:
    def test_endpoints_split_and_trimmed(self):
        cfg = EffectiveConfig.from_settings("userdel", {"dgraph": "a:1, b:2", "user": "u"})
        assert cfg.endpoints == ("a:1", "b:2")

    def test_endpoints_that_split_to_nothing(self):
        with pytest.raises(MissingRequired) as excinfo:
            EffectiveConfig.from_settings("userdel", {"dgraph": " , ", "user": "u"})
        assert excinfo.value.env_var == "DGRAPH_ACL_USERDEL_DGRAPH"
        assert excinfo.value.fallback_env_var == "DGRAPH_ACL_DGRAPH"

    def test_password_is_secret(self):
        cfg = EffectiveConfig.from_settings(
            "useradd", {"dgraph": "a:1", "user": "u", "password": "s3cret"}
        )
        assert cfg.password is not None
        assert cfg.password.get_secret_value() == "s3cret"
        assert "s3cret" not in repr(cfg)

    def test_invalid_permission_propagates(self):
        with pytest.raises(InvalidPermission):
            EffectiveConfig.from_settings(
                "chmod", {"dgraph": "a:1", "group": "g", "pred": "name", "perm": "8"}
            )

    def test_tls_pairing_error_is_config_error(self):
        with pytest.raises(ConfigError):
            EffectiveConfig.from_settings(
                "userdel", {"dgraph": "a:1", "user": "u", "tls_on": True, "tls_cert_key": "k.pem"}
            )

    def test_immutable(self):
        cfg = EffectiveConfig.from_settings("groupadd", {"dgraph": "a:1", "group": "dev"})
        with pytest.raises(ValidationError):
            cfg.group = "ops"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# resolve_config per verb
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_endpoint_from_command_env(self):
        cfg = resolve_config(
            Verb.USER_DELETE,
            {"user": "alice"},
            environ={"DGRAPH_ACL_USERDEL_DGRAPH": "10.0.0.1:9080"},
        )
        assert list(cfg.endpoints) == ["10.0.0.1:9080"]

    def test_flag_wins_over_env(self):
        cfg = resolve_config(
            Verb.USER_DELETE,
            {"user": "alice", "dgraph": "a:1,b:2"},
            environ={"DGRAPH_ACL_USERDEL_DGRAPH": "10.0.0.1:9080"},
        )
        assert list(cfg.endpoints) == ["a:1", "b:2"]

    def test_default_endpoint(self):
        cfg = resolve_config(Verb.GROUP_ADD, {"group": "dev"}, environ={})
        assert cfg.endpoints == ("127.0.0.1:9080",)
        assert cfg.tls.enabled is False

    def test_tls_from_parent_env(self):
        cfg = resolve_config(
            Verb.GROUP_ADD,
            {"group": "dev"},
            environ={
                "DGRAPH_ACL_TLS_ON": "true",
                "DGRAPH_ACL_TLS_SERVER_NAME": "alpha.internal",
            },
        )
        assert cfg.tls.enabled is True
        assert cfg.tls.server_name == "alpha.internal"

    def test_chmod_fields(self):
        cfg = resolve_config(
            Verb.GROUP_MODIFY_PERMISSION,
            {"group": "dev", "pred": "name", "perm": "6"},
            environ={},
        )
        assert cfg.group == "dev"
        assert cfg.predicate == "name"
        assert cfg.permission == 6

    def test_chmod_missing_perm(self):
        with pytest.raises(MissingRequired) as excinfo:
            resolve_config(Verb.GROUP_MODIFY_PERMISSION, {"group": "dev", "pred": "name"}, environ={})
        assert excinfo.value.env_var == "DGRAPH_ACL_CHMOD_PERM"

    def test_usermod_groups_list(self):
        cfg = resolve_config(
            Verb.USER_MODIFY_GROUPS, {"user": "alice", "groups": "dev, ops"}, environ={}
        )
        assert cfg.groups == ("dev", "ops")

    def test_usermod_separators_only(self):
        with pytest.raises(MissingRequired) as excinfo:
            resolve_config(Verb.USER_MODIFY_GROUPS, {"user": "alice", "groups": " , "}, environ={})
        assert excinfo.value.env_var == "DGRAPH_ACL_USERMOD_GROUPS"

    def test_useradd_requires_password(self):
        with pytest.raises(MissingRequired):
            resolve_config(Verb.USER_ADD, {"user": "alice"}, environ={})

    def test_unknown_verb(self):
        with pytest.raises(KeyError):
            resolve_config("frobnicate", {}, environ={})

    def test_every_verb_has_prefix(self):
        for verb, spec in VERBS.items():
            assert spec.env_prefix == f"DGRAPH_ACL_{verb.value.upper()}"


class TestLoggingConfig:
    def test_level_uppercased(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_bad_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")

    def test_configure_logging_rejects_bad_level(self):
        with pytest.raises(ConfigError):
            configure_logging("chatty")
