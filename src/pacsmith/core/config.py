"""Application state and configuration."""

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from pacsmith.classify import ErrorCategory
from pacsmith.core.base import BaseConfig, BaseState
from pacsmith.core.log import Logger
from pacsmith.core.result import BatchResult
from pacsmith.core.yaml_settings import YamlWithIncludesSettingsSource
from pacsmith.remediation.conflict import OwnerRemovalPolicy

# Modules available to {module.attr} templates in YAML files,
# e.g. {platformdirs.user_log_dir}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

SELECTION_PATTERN = re.compile(r"^(all|group:\S+|file:.+)$")

# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================


class PackagesConfig(BaseConfig):
    """Which packages to install."""

    selection: str = Field(
        default="all",
        description=(
            "Package set: 'all' (whole repository), 'group:<name>', "
            "or 'file:<path>' (one package name per line)"
        ),
    )
    repository: str = Field(
        default="blackarch",
        description="Sync repository listed when selection is 'all'",
    )
    sentinel: str | None = Field(
        default="blackarch-menus",
        description="Package always appended to the selection",
    )

    @field_validator("selection")
    @classmethod
    def _check_selection(cls, value: str) -> str:
        if not SELECTION_PATTERN.match(value):
            raise ValueError(
                f"Invalid package selection '{value}'; expected 'all', "
                f"'group:<name>' or 'file:<path>'"
            )
        return value


class InstallConfig(BaseConfig):
    """Retry and remediation behavior for each package."""

    max_attempts: int = Field(
        default=2,
        ge=1,
        description="Install attempts per package before it is failed",
    )
    retry_delay: float = Field(
        default=2.0,
        ge=0,
        description="Seconds to wait between attempts (lets the pacman "
                    "lock clear)",
    )
    timeout: int | None = Field(
        default=None,
        description="Timeout in seconds for one install invocation "
                    "(None waits forever)",
    )
    owner_removal: OwnerRemovalPolicy = Field(
        default=OwnerRemovalPolicy.AGGRESSIVE,
        description=(
            "When a package owning a conflicting file may be removed: "
            "'aggressive' (variant builds, or packages whose name does not "
            "contain the package being installed), "
            "'variant-only', or 'never'"
        ),
    )
    clean_cache: bool = Field(
        default=False,
        description="Run the pacman cache cleanup after the batch",
    )


class AurConfig(BaseConfig):
    """AUR helper used for pre-install packages and the retry pass."""

    enabled: bool = Field(
        default=True,
        description="Use the AUR helper when it is installed",
    )
    helper: str = Field(
        default="yay",
        description="AUR helper executable (yay, paru, ...)",
    )
    user: str | None = Field(
        default=None,
        description="User the helper runs as (defaults to SUDO_USER)",
    )
    preinstall: list[str] = Field(
        default_factory=list,
        description="Packages installed with the helper before the batch",
    )
    retry_failed: bool = Field(
        default=True,
        description="Retry failed packages once with the helper",
    )


class BackupConfig(BaseConfig):
    """What to do with conflict backups after a batch."""

    cleanup: Literal["keep", "archive", "delete"] = Field(
        default="keep",
        description="Post-run backup disposition: keep, archive, delete",
    )
    archive_dir: Path = Field(
        default=Path("{config.log_root}/archive"),
        description="Where 'archive' moves backups "
                    "(supports {config.*} templates)",
    )


class SignatureRuleConfig(BaseModel):
    """One classifier rule."""

    name: str
    pattern: str
    category: ErrorCategory

    @field_validator("pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"Invalid rule pattern '{value}': {e}") from e
        return value


class ClassifierConfig(BaseConfig):
    """Failure classification rules."""

    rules: list[SignatureRuleConfig] = Field(
        default_factory=list,
        description="Ordered rules replacing the built-in ones; "
                    "first match wins",
    )


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance"
    )
    packages: PackagesConfig = Field(
        default_factory=PackagesConfig,
        description="Package selection",
    )
    install: InstallConfig = Field(
        default_factory=InstallConfig,
        description="Per-package retry settings",
    )
    aur: AurConfig = Field(
        default_factory=AurConfig,
        description="AUR helper settings",
    )
    backup: BackupConfig = Field(
        default_factory=BackupConfig,
        description="Backup disposition",
    )
    classifier: ClassifierConfig = Field(
        default_factory=ClassifierConfig,
        description="Failure classification",
    )

    log_level: str = Field(
        default="info",
        alias="log-level",
        description=(
            "Console log level: 'trace', 'debug', 'info', "
            "'warn', 'error', 'fatal'"
        ),
    )
    interactive: bool = Field(
        default=False,
        description="Ask before installing, before the AUR pass, and "
                    "before backup cleanup",
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "pacsmith"
        ),
        description=(
            "Directory for the installation log, error outputs, "
            "package lists and backups"
        ),
    )
    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Command templates by tool (pacman, aur)",
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Initialize the global logger singleton once config is
        loaded."""
        from pacsmith.core.log import setup_logger

        if self.logger is None:
            self.logger = Logger(level=self.log_level)

        self.logger = setup_logger(
            log_root=self.log_root,
            run_name="install",
            level=self.logger.level,
            console=self.logger.console,
            file=self.logger.file,
        )

        from pacsmith.core.yaml_settings import _cleanup_bootstrap_logger
        _cleanup_bootstrap_logger()

        return self

    @property
    def errors_dir(self) -> Path:
        return self.log_root / "errors"

    @property
    def backups_dir(self) -> Path:
        return self.log_root / "backups"

    def close(self):
        """Close config and the global logger singleton."""
        from pacsmith.core.log import logger
        logger.close()

        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable while a command runs)
# ============================================================


class InstallState(BaseState):
    """Install command runtime state."""

    status: str = Field(
        default="pending",
        description="pending, running, complete, declined, interrupted",
    )
    packages: list[str] = Field(
        default_factory=list,
        description="Resolved package list for this run",
    )
    result: BatchResult | None = Field(
        default=None,
        description="Outcomes of the batch once it has run",
    )


class BackupsState(BaseState):
    """Backups command runtime state."""

    affected: int = Field(
        default=0,
        description="Files archived, deleted or restored",
    )


class Runtime(BaseModel):
    """Runtime state by command."""

    install: InstallState = Field(default_factory=InstallState)
    backups: BackupsState = Field(default_factory=BackupsState)


# ============================================================
# STATE (config + runtime combined)
# ============================================================


class State(BaseSettings):
    """Complete application state: configuration and runtime.

    Sources in priority order: constructor arguments, YAML (package
    defaults < user config < ./pacsmith.yaml < --include files),
    .env, environment (PACSMITH_CONFIG__INSTALL__MAX_ATTEMPTS=3).
    """

    config: Config = Field(
        default_factory=Config,
        description="Application configuration (from YAML/env/CLI)"
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates while a command runs)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge. "
            "Use --include on CLI or include: in YAML files."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="pacsmith.yaml",
        env_file=".env",
        env_prefix="PACSMITH_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore'
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Expand {config.*} and {module.*} templates in every string
        and Path field.

        Runtime placeholders such as {package} in command templates
        don't name anything on the state and are left alone.
        """
        _expand_fields(self, self)
        return self


TEMPLATE_PATTERN = re.compile(r'\{([a-z._]+)\}')


def _lookup(root: State, dotted: str) -> str | None:
    """Resolve config.log_root or platformdirs.user_log_dir style
    names; None if the name doesn't resolve."""
    head, *rest = dotted.split(".")
    if head in TEMPLATE_NAMESPACE:
        target = TEMPLATE_NAMESPACE[head]
    else:
        target, rest = root, [head, *rest]

    try:
        for attr in rest:
            target = getattr(target, attr)
        # platformdirs functions take the application name
        if callable(target):
            target = target('pacsmith', appauthor=False)
    except (AttributeError, TypeError):
        return None
    return str(target)


def _expand_string(root: State, text: str) -> str:
    """Examples:
        "{config.log_root}/archive" -> "/var/log/pacsmith/archive"
        "{platformdirs.user_config_dir}" -> "~/.config/pacsmith"
    """
    def replace(match):
        value = _lookup(root, match.group(1))
        return match.group(0) if value is None else value

    return TEMPLATE_PATTERN.sub(replace, text)


def _expand(root: State, value: Any) -> Any:
    if isinstance(value, Enum):
        return value
    if isinstance(value, str):
        return _expand_string(root, value)
    if isinstance(value, Path):
        return Path(_expand_string(root, str(value)))
    if isinstance(value, BaseModel):
        _expand_fields(root, value)
    elif isinstance(value, dict):
        for key, item in value.items():
            value[key] = _expand(root, item)
    elif isinstance(value, list):
        value[:] = [_expand(root, item) for item in value]
    return value


def _expand_fields(root: State, model: BaseModel) -> None:
    for name in type(model).model_fields:
        value = getattr(model, name)
        expanded = _expand(root, value)
        if expanded is not value:
            setattr(model, name, expanded)


__all__ = ["State", "Config", "BaseConfig", "BaseState"]
