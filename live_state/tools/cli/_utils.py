"""
Utilities specific to CLI functionality.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from click import BadParameter, Parameter
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree
from typer import Context, Typer

from ...core import DiffRecord, ListenerRegistry

if TYPE_CHECKING:
    from .main import RootContext


console = Console()

rich_handler = RichHandler(
    console=console,
    rich_tracebacks=True,
    show_level=True,
    show_time=True,
    show_path=False,
)
rich_handler.setFormatter(logging.Formatter("%(message)s"))

logger = logging.getLogger("live-state")
logger.setLevel(logging.INFO)
logger.addHandler(rich_handler)
logger.propagate = False


class MainTyper(Typer):
    """
    Typer app with preconfigured settings.
    """

    def __init__(self, name: str, *, help: str):
        return super().__init__(
            name=name,
            help=help,
            rich_markup_mode="markdown",
            no_args_is_help=True,
            add_completion=False,
        )


def get_root_context(ctx: Context) -> RootContext:
    from .main import RootContext

    root_context = ctx.obj
    assert isinstance(root_context, RootContext)
    return root_context


def lookup_param(ctx: Context, name: str) -> Parameter:
    """
    Lookup param by name.
    """
    param = next((p for p in ctx.command.params if p.name == name), None)
    assert param, f"Could not find param with name: {name}"
    return param


def load_json(ctx: Context, file: Path, param_name: str) -> Any:
    """
    Load value from .json file, reporting errors against the parameter
    it was passed as.
    """
    try:
        with file.open() as fh:
            return json.load(fh)
    except (OSError, ValueError) as e:
        raise BadParameter(
            f"failed to load '{file}': {e}",
            ctx=ctx,
            param=lookup_param(ctx, param_name),
        )


def render_value(label: str, value: Any) -> Tree:
    """
    Get tree of value for display.
    """
    tree = Tree(f"[bold]{escape(label)}[/bold]")
    _add_children(tree, value)
    return tree


def render_records(records: list[DiffRecord]) -> Table:
    """
    Get table of diff records for display.
    """
    table = Table("Kind", "Path", "Value")
    for record in records:
        table.add_row(
            str(record.kind),
            escape(record.path_key),
            escape(json.dumps(record.value)) if record.value is not None else "",
        )
    return table


def render_listeners(listeners: ListenerRegistry) -> Table:
    """
    Get table of installed listeners for display.
    """
    table = Table("Path", "Shape")
    for path_key in listeners:
        listener = listeners.get(path_key)
        assert listener
        table.add_row(escape(path_key), listener.shape.name.lower())
    return table


def _add_children(tree: Tree, value: Any):
    items = (
        enumerate(value)
        if isinstance(value, list)
        else value.items()
        if isinstance(value, dict)
        else None
    )

    if items is None:
        tree.label = f"{tree.label}: {escape(json.dumps(value))}"
        return

    for key, child in items:
        _add_children(tree.add(escape(str(key))), child)
