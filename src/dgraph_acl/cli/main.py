"""
dgraph-acl CLI entry point.

Commands:
  dgraph-acl useradd  -u USER -p PASSWORD         — add a user
  dgraph-acl userdel  -u USER                     — delete a user
  dgraph-acl login    -u USER -p PASSWORD         — print access/refresh JWTs
  dgraph-acl groupadd -g GROUP                    — add a group
  dgraph-acl groupdel -g GROUP                    — delete a group
  dgraph-acl usermod  -u USER -g GROUP[,GROUP]    — set a user's groups
  dgraph-acl chmod    -g GROUP -p PRED -P PERM    — set a group's predicate acl

Every command also takes -d/--dgraph and the --tls_* options. Any option can
come from the environment as DGRAPH_ACL_<COMMAND>_<OPTION>; the endpoint and
TLS options also fall back to DGRAPH_ACL_<OPTION>.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any

import click
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape

from dgraph_acl import __version__
from dgraph_acl.core.config import Setting, configure_logging
from dgraph_acl.core.constants import DEFAULT_LOG_LEVEL, ENV_PREFIX
from dgraph_acl.core.exceptions import ConfigError
from dgraph_acl.core.verbs import PARENT_SETTINGS, VERBS, Verb

console = Console()
err_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Option helpers
# ---------------------------------------------------------------------------


def _setting_option(setting: Setting) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    decls = [f"--{setting.name}"]
    if setting.short:
        decls.insert(0, f"-{setting.short}")
    if setting.kind == "bool":
        # Bare --tls_on means true; --tls_on=false overrides a true environment value.
        return click.option(
            *decls,
            type=click.BOOL,
            is_flag=False,
            flag_value=True,
            default=None,
            metavar="[BOOLEAN]",
            help=setting.help,
        )
    help_text = setting.help
    if setting.default:
        help_text += f"  [default: {setting.default}]"
    return click.option(*decls, default=None, help=help_text)


def acl_options(verb: Verb) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Attach the shared endpoint/TLS options plus the verb's own options."""
    settings = PARENT_SETTINGS + VERBS[verb].settings

    def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
        for setting in reversed(settings):
            f = _setting_option(setting)(f)
        return f

    return decorator


def _command_line_flags(ctx: click.Context) -> dict[str, Any]:
    """Only options typed on the command line count as explicit flags."""
    return {
        name: value
        for name, value in ctx.params.items()
        if ctx.get_parameter_source(name) is ParameterSource.COMMANDLINE
    }


def _run(verb: Verb) -> None:
    from dgraph_acl.cli._dispatch import Invocation

    ctx = click.get_current_context()
    invocation = Invocation(verb, _command_line_flags(ctx), failure_log_level=logging.DEBUG)
    code = invocation.run()
    if not invocation.succeeded:
        err_console.print(
            f"[red]{escape(VERBS[verb].failure)}:[/red] {escape(str(invocation.error))}"
        )
        sys.exit(int(code))
    _render(verb, invocation.result or {})


def _render(verb: Verb, result: dict[str, Any]) -> None:
    if verb is Verb.USER_ADD:
        console.print(f"Created new user with id [cyan]{escape(result['user'])}[/cyan]")
    elif verb is Verb.USER_DELETE:
        console.print(f"Deleted user with id [cyan]{escape(result['user'])}[/cyan]")
    elif verb is Verb.LOGIN:
        # Raw echo so long tokens are never wrapped.
        click.echo(f"Access JWT:\n{result['access_jwt']}")
        click.echo(f"Refresh JWT:\n{result['refresh_jwt']}")
    elif verb is Verb.GROUP_ADD:
        console.print(f"Created new group with id [cyan]{escape(result['group'])}[/cyan]")
    elif verb is Verb.GROUP_DELETE:
        console.print(f"Deleted group with id [cyan]{escape(result['group'])}[/cyan]")
    elif verb is Verb.USER_MODIFY_GROUPS:
        if not (result["added"] or result["removed"] or result.get("dropped")):
            console.print(f"Nothing to change for user [cyan]{escape(result['user'])}[/cyan]")
            return
        console.print(
            f"Set groups of user [cyan]{escape(result['user'])}[/cyan] to "
            f"{escape(', '.join(result['groups']))}"
        )
        for groupid in result["added"]:
            console.print(f"  [green]+[/green] {escape(groupid)}")
        for groupid in result["removed"]:
            console.print(f"  [red]-[/red] {escape(groupid)}")
        for uid in result.get("dropped", []):
            console.print(f"  [red]-[/red] {escape(uid)} [dim](deleted group)[/dim]")
    elif verb is Verb.GROUP_MODIFY_PERMISSION:
        console.print(
            f"Set permission {result['rights']} ({result['permission']}) on predicate "
            f"[cyan]{escape(result['predicate'])}[/cyan] for group "
            f"[cyan]{escape(result['group'])}[/cyan]"
        )


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "--version", "-V", message="dgraph-acl %(version)s")
@click.option(
    "--log-level",
    envvar=f"{ENV_PREFIX}_LOG_LEVEL",
    default=DEFAULT_LOG_LEVEL,
    show_default=True,
    help="DEBUG, INFO, WARNING or ERROR",
)
def cli(log_level: str) -> None:
    """Manage users, groups and predicate permissions of a Dgraph cluster."""
    try:
        configure_logging(log_level)
    except ConfigError as exc:
        raise click.BadParameter(str(exc), param_hint="--log-level") from exc


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@cli.command("useradd")
@acl_options(Verb.USER_ADD)
def useradd(**_: Any) -> None:
    """Add a user."""
    _run(Verb.USER_ADD)


@cli.command("userdel")
@acl_options(Verb.USER_DELETE)
def userdel(**_: Any) -> None:
    """Delete a user."""
    _run(Verb.USER_DELETE)


@cli.command("login")
@acl_options(Verb.LOGIN)
def login(**_: Any) -> None:
    """Log in and print the access and refresh JWTs."""
    _run(Verb.LOGIN)


@cli.command("usermod")
@acl_options(Verb.USER_MODIFY_GROUPS)
def usermod(**_: Any) -> None:
    """Set the groups a user belongs to."""
    _run(Verb.USER_MODIFY_GROUPS)


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


@cli.command("groupadd")
@acl_options(Verb.GROUP_ADD)
def groupadd(**_: Any) -> None:
    """Add a group."""
    _run(Verb.GROUP_ADD)


@cli.command("groupdel")
@acl_options(Verb.GROUP_DELETE)
def groupdel(**_: Any) -> None:
    """Delete a group."""
    _run(Verb.GROUP_DELETE)


@cli.command("chmod")
@acl_options(Verb.GROUP_MODIFY_PERMISSION)
def chmod(**_: Any) -> None:
    """Change a group's permission on a predicate (4 read, 2 write, 1 modify)."""
    _run(Verb.GROUP_MODIFY_PERMISSION)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
