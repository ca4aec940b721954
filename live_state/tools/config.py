"""
Interface to configuration as persisted in .yaml file.
"""
from __future__ import annotations

from logging import Logger
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import BaseModel, field_validator, model_validator

from ..core import MemoryStore, SyncSession, normalize_path

__all__ = [
    "Config",
    "MirrorConfig",
]


class Config(BaseModel):
    """
    Encapsulates configuration for use in tools.
    """

    root_dir: Path | None = None
    """
    Folder which relative store files are located in. When loaded from
    .yaml file, defaults to the folder containing it.
    """

    mirrors: dict[str, MirrorConfig] = {}
    """
    Mapping of mirror names to configs.
    """

    @field_validator("root_dir", mode="before")
    def validate_root_dir(cls, value: Any) -> Any:
        return _validate_dir(value)

    @model_validator(mode="after")
    def validate_mirrors(self) -> Self:
        # resolve relative store files against root dir if applicable
        if self.root_dir:
            for mirror in self.mirrors.values():
                if not mirror.store_file.is_absolute():
                    mirror.store_file = self.root_dir / mirror.store_file
        return self

    @classmethod
    def load_yaml(cls, file: Path) -> Self:
        """
        Load config from .yaml file. A relative `root_dir` is taken
        relative to the file's folder.

        :raises ValueError: If the file doesn't contain a mapping
        """
        with file.open() as fh:
            config = yaml.safe_load(fh)

        if config is None:
            config = {}
        elif not isinstance(config, dict):
            raise ValueError(f"Expected mapping, got: {config}")

        root_dir = Path(config.get("root_dir") or ".")
        config["root_dir"] = file.parent / root_dir

        return cls(**config)

    def dump_yaml(self, file: Path):
        """
        Dump config to .yaml file, with store files relative to the
        file's folder where possible.
        """
        mirrors: dict[str, Any] = {}
        for name, mirror in self.mirrors.items():
            store_file = mirror.store_file
            if store_file.is_relative_to(file.parent):
                store_file = store_file.relative_to(file.parent)

            mirrors[name] = mirror.model_dump(mode="json") | {
                "store_file": str(store_file)
            }

        file.write_text(
            yaml.safe_dump(
                {"mirrors": mirrors}, default_flow_style=False, sort_keys=False
            )
        )


class MirrorConfig(BaseModel):
    """
    Encapsulates info for mirroring a subtree of a store file.
    """

    store_file: Path
    """
    .json file holding the store's tree.
    """

    root: str | None = None
    """
    Root path of subtree to mirror, or `None` for the whole tree.
    """

    @field_validator("root")
    def validate_root(cls, value: str | None) -> str | None:
        return normalize_path(value) if value is not None else None

    def load_store(self, *, logger: Logger) -> MemoryStore:
        """
        Load store from this mirror's file.
        """
        return MemoryStore.load_json(self.store_file, logger=logger)

    def create_session(
        self, store: MemoryStore, *, path: str | None = None, logger: Logger
    ) -> SyncSession:
        """
        Get session mirroring the given path, or the configured root if
        none given.
        """
        return SyncSession(store, path or self.root or "/", logger=logger)


def _validate_dir(value: Any) -> Any:
    """
    Coerce to path and ensure it exists.
    """
    if not isinstance(value, (str, Path)):
        # let pydantic handle type error
        return value

    path = Path(value) if isinstance(value, str) else value

    if not path.is_dir():
        raise ValueError(f"folder does not exist: '{path}'")

    return path
