"""Alias management commands for depi.

An alias names a whole specification string so it can be reused as a
single token in ``add``, ``init -D`` and ``new -D``::

    $ depi alias add web "axum/tokio:full/serde:derive"
    $ depi add web/anyhow
    $ depi alias list
    $ depi alias remove web
"""

from __future__ import annotations

import sys
from typing import List

import click
from rich.markup import escape

from depi.context import DepiContext, pass_context
from depi.core.alias_store import AliasStore, default_alias_path
from depi.constants import TOKEN_SEPARATOR
from depi.core.parser import parse_token
from depi.exceptions import DepiError, TokenParseError
from depi.utils import (
    get_logger,
    get_raw_console,
    print_banner,
    print_error,
    print_success,
    print_warning,
)

logger = get_logger("commands.alias")


def _store(ctx: DepiContext) -> AliasStore:
    store = AliasStore(default_alias_path(ctx.config.alias_file))
    store.load()
    return store


def _invalid_tokens(expansion: str) -> List[TokenParseError]:
    """Alias expansions are plain tokens; macros and nested aliases are not expanded."""
    errors = []
    for token in expansion.split(TOKEN_SEPARATOR):
        try:
            parse_token(token)
        except TokenParseError as exc:
            errors.append(exc)
    return errors


@click.group()
def alias() -> None:
    """Manage dependency aliases."""


@alias.command(name="add")
@click.argument("name")
@click.argument("expansion")
@pass_context
def alias_add(ctx: DepiContext, name: str, expansion: str) -> None:
    """Define NAME as a shorthand for EXPANSION."""
    errors = _invalid_tokens(expansion)
    if errors:
        for error in errors:
            print_error(str(error))
        raise click.BadParameter(
            "not a valid dependency specification", param_hint="EXPANSION"
        )

    try:
        store = _store(ctx)
        previous = store.add(name, expansion)
        store.save()
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="NAME") from exc
    except DepiError as exc:
        print_error(str(exc))
        sys.exit(1)

    if previous is None:
        print_success(f"Added alias '{name}'")
    else:
        print_success(f"'{previous}' was replaced by '{expansion}'")


@alias.command(name="remove")
@click.argument("name")
@pass_context
def alias_remove(ctx: DepiContext, name: str) -> None:
    """Delete the alias NAME."""
    try:
        store = _store(ctx)
        removed = store.remove(name)
        if removed is not None:
            store.save()
    except DepiError as exc:
        print_error(str(exc))
        sys.exit(1)

    if removed is None:
        print_warning(f"Alias '{name}' does not exist")
    else:
        print_success(f"Removed alias '{name}' ({removed})")


@alias.command(name="list")
@pass_context
def alias_list(ctx: DepiContext) -> None:
    """Show every defined alias."""
    try:
        aliases = _store(ctx).aliases
    except DepiError as exc:
        print_error(str(exc))
        sys.exit(1)

    if not aliases:
        print_warning("No aliases defined")
        return

    print_banner("alias list")
    console = get_raw_console()
    for name in sorted(aliases):
        console.print(
            f"  [bold]{escape(name)}[/bold] -> {escape(aliases[name])}",
            highlight=False,
        )
