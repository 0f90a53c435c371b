"""TOML config loading for berd.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_NAME = "berd.toml"


@dataclass
class RunConfig:
    ast_file: str = ""
    print_result: bool = True


@dataclass
class DiagnosticsConfig:
    color: bool = True
    verbose: bool = False


@dataclass
class BerdConfig:
    run: RunConfig = field(default_factory=RunConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def find_config(start_path: Path | None = None) -> Path | None:
    """Walk up directories looking for berd.toml; None if there is none."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.is_file():
            return candidate
        if path.parent == path:
            return None
        path = path.parent


def load_config(path: Path | None) -> BerdConfig:
    """Parse a berd.toml file; missing file or keys fall back to defaults."""
    config = BerdConfig()
    if path is None:
        return config

    with open(path, "rb") as f:
        data = tomllib.load(f)

    if "run" in data:
        run = data["run"]
        config.run = RunConfig(
            ast_file=run.get("ast_file", ""),
            print_result=run.get("print_result", True),
        )

    if "diagnostics" in data:
        diag = data["diagnostics"]
        config.diagnostics = DiagnosticsConfig(
            color=diag.get("color", True),
            verbose=diag.get("verbose", False),
        )

    return config
