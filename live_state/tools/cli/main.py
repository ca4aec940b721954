"""
Entry point of `live-state` CLI.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import dotenv
from click.exceptions import BadParameter, MissingParameter
from pydantic import ValidationError
from typer import Argument, Context, Exit, Option

from ...core import MemoryStore, SessionState, SyncSession, diff
from ...core.batch import build_write_batch
from ..config import Config, MirrorConfig
from ._utils import (
    MainTyper,
    console,
    get_root_context,
    load_json,
    logger,
    lookup_param,
    render_listeners,
    render_records,
    render_value,
)

dotenv.load_dotenv()

app = MainTyper(
    "live-state",
    help="LiveState CLI Toolkit",
)


@app.callback()
def main(
    ctx: Context,
    store_file: Path
    | None = Option(
        None,
        "--store",
        help=".json file holding the store's tree",
        envvar="LIVE_STATE_STORE",
        dir_okay=False,
    ),
    mirror_name: str
    | None = Option(
        None,
        "--mirror",
        help="Mirror name as configured in .yaml",
        envvar="LIVE_STATE_MIRROR",
    ),
    config_file: Path = Option(
        "live-state.yaml",
        help=".yaml file containing mirror info, only applicable with --mirror",
        envvar="LIVE_STATE_CONFIG_FILE",
        dir_okay=False,
    ),
    verbose: bool = Option(
        False,
        "--verbose",
        "-v",
        help="Log listener and write activity",
    ),
):
    if verbose:
        logger.setLevel(logging.DEBUG)

    if mirror_name:
        root_context = RootContext.from_config(
            ctx=ctx, mirror_name=mirror_name, config_file=config_file
        )
    else:
        mirror = (
            MirrorConfig(store_file=store_file)
            if store_file is not None
            else None
        )
        root_context = RootContext(ctx=ctx, mirror=mirror)

    ctx.obj = root_context


@app.command()
def show(
    ctx: Context,
    path: str
    | None = Argument(
        None,
        help="Path of subtree to mirror, defaulting to configured root",
    ),
):
    """
    Mirror a subtree and print it along with its listeners
    """
    root_context = get_root_context(ctx)
    store = root_context.load_store()

    with root_context.create_session(store, path) as session:
        _check_active(session)

        console.print(render_value(str(session.path), session.value))
        console.print(render_listeners(session.listeners))


@app.command("diff")
def diff_files(
    ctx: Context,
    before: Path = Argument(help="Old value as .json file", dir_okay=False),
    after: Path = Argument(help="New value as .json file", dir_okay=False),
    root: str = Option("/", help="Root path to write changes under"),
):
    """
    Print differences between two values and the resulting writes
    """
    value_before = load_json(ctx, before, "before")
    value_after = load_json(ctx, after, "after")

    records = diff(value_before, value_after)

    if not len(records):
        logger.info("No differences")
        return

    console.print(render_records(records))
    console.print_json(data=build_write_batch(root, records, logger=logger))


@app.command()
def apply(
    ctx: Context,
    value_file: Path = Argument(help="New value as .json file", dir_okay=False),
    path: str
    | None = Option(
        None,
        help="Path of subtree to replace, defaulting to configured root",
    ),
    dry_run: bool = Option(
        False,
        "--dry-run",
        help="Only print changes which would be written",
    ),
):
    """
    Replace a subtree with a new value, writing only the differences
    """
    root_context = get_root_context(ctx)
    store = root_context.load_store()
    assert root_context.mirror is not None

    value_new = load_json(ctx, value_file, "value_file")

    with root_context.create_session(store, path) as session:
        _check_active(session)

        records = diff(session.value, value_new)

        if not len(records):
            logger.info("No changes to write")
            return

        console.print(render_records(records))

        if dry_run:
            logger.info(f"Would write {len(records)} changes")
            return

        session.update(lambda _: value_new)

    store.dump_json(root_context.mirror.store_file)
    logger.info(
        f"Wrote {len(records)} changes to '{root_context.mirror.store_file}'"
    )


def run():
    app()


def _check_active(session: SyncSession):
    if session.state is not SessionState.ACTIVE:
        logger.error(f"No data at '{session.path}'")
        raise Exit(code=1)


@dataclass(kw_only=True)
class RootContext:
    ctx: Context
    mirror: MirrorConfig | None

    @classmethod
    def from_config(
        cls,
        *,
        ctx: Context,
        mirror_name: str,
        config_file: Path,
    ) -> RootContext:
        # ensure config file exists
        if not config_file.is_file():
            raise BadParameter(
                message=f"file does not exist: {config_file}",
                ctx=ctx,
                param=lookup_param(ctx, "config_file"),
            )

        # get config from file
        try:
            config = Config.load_yaml(config_file)
        except (ValueError, ValidationError) as e:
            raise BadParameter(
                f"failed to load config file '{config_file}': {e}",
                ctx=ctx,
                param=lookup_param(ctx, "config_file"),
            )

        # get mirror from config
        mirror = config.mirrors.get(mirror_name)
        if not mirror:
            raise BadParameter(
                f"mirror '{mirror_name}' not found in '{config_file}'",
                ctx=ctx,
                param=lookup_param(ctx, "mirror_name"),
            )

        return RootContext(ctx=ctx, mirror=mirror)

    def load_store(self) -> MemoryStore:
        if self.mirror is None:
            raise MissingParameter(
                message="either --store or --mirror must be provided",
                ctx=self.ctx,
                param_hint=["store", "mirror"],
                param_type="option",
            )

        try:
            return self.mirror.load_store(logger=logger)
        except (OSError, ValueError) as e:
            logger.error(
                f"Failed to load store '{self.mirror.store_file}': {e}"
            )
            raise Exit(code=1)

    def create_session(
        self, store: MemoryStore, path: str | None
    ) -> SyncSession:
        assert self.mirror is not None
        return self.mirror.create_session(store, path=path, logger=logger)


if __name__ == "__main__":
    app()
