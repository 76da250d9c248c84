"""YAML configuration loading with include directive support.

Layers, later winning in a deep merge:

    package defaults < user config < ./pacsmith.yaml < --include files

Any file may name further files under a top-level ``include:`` key
(a string or a list). Included files are resolved relative to the
file naming them and are overridden by it.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

# Logger used while configuration is loading, before the configured
# one exists. Created lazily to avoid a circular import.
_bootstrap_logger = None


def _get_bootstrap_logger():
    global _bootstrap_logger
    if _bootstrap_logger is None:
        from pacsmith.core.log import ConsoleSink, Logger
        _bootstrap_logger = Logger(console=ConsoleSink(level="warn"))
        _bootstrap_logger.setup(log_root=Path.home(), run_name="bootstrap")
    return _bootstrap_logger


def _cleanup_bootstrap_logger():
    """Close the bootstrap logger once Config has configured the real
    one."""
    global _bootstrap_logger
    if _bootstrap_logger is not None:
        _bootstrap_logger.close()
    _bootstrap_logger = None


def default_config_file() -> Path:
    return Path(__file__).parent.parent / "defaults" / "default.yaml"


def user_config_file() -> Path:
    return Path(user_config_dir("pacsmith", appauthor=False)) / "pacsmith.yaml"


def cli_includes(argv: list[str]) -> list[str]:
    """Values of every ``--include PATH`` pair in argv."""
    return [
        argv[i + 1] for i, arg in enumerate(argv[:-1])
        if arg == "--include"
    ]


def deep_merge(base: dict, override: dict) -> dict:
    """New dict with override merged into base; nested dicts merge,
    everything else is replaced."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_with_includes(path: Path, chain: frozenset[Path] = frozenset()) -> dict:
    """Load one YAML file with its include: directives expanded.

    Raises:
        ValueError: If a file includes itself, directly or not
    """
    path = path.resolve()
    if path in chain:
        raise ValueError(f"Circular include: {path}")
    chain = chain | {path}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    includes = data.pop("include", None) or []
    if isinstance(includes, str):
        includes = [includes]

    merged: dict = {}
    for name in includes:
        target = Path(name).expanduser()
        if not target.is_absolute():
            target = path.parent / target
        merged = deep_merge(merged, load_with_includes(target, chain))
    return deep_merge(merged, data)


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """YAML settings source layering defaults, user and project files,
    and --include arguments."""

    def __init__(
        self, settings_cls: type[BaseSettings], yaml_file=None
    ):
        # --include has to be seen before pydantic parses the CLI
        project = yaml_file or settings_cls.model_config.get("yaml_file")
        files = []
        if project:
            files.extend(
                [project] if isinstance(project, (str, os.PathLike))
                else project
            )
        files.extend(cli_includes(sys.argv))

        super().__init__(settings_cls, files or None)

    def _read_files(self, files):
        """Load defaults, user config, project config, and includes.

        Args:
            files: Project config file and --include paths

        Returns:
            Deep-merged dictionary of all loaded data
        """
        if files is None:
            files = []
        elif isinstance(files, (str, os.PathLike)):
            files = [files]

        layers = [default_config_file(), user_config_file()]
        layers += [Path(f).expanduser() for f in files]

        log = _get_bootstrap_logger()
        result: dict = {}
        for path in layers:
            if not path.is_file():
                log.debug(
                    "Configuration file not found (skipping)",
                    file=str(path),
                )
                continue
            with log.span("Configuration loading", file=str(path)):
                result = deep_merge(result, load_with_includes(path))
        return result
