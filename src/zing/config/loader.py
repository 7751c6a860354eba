"""
Configuration loader for zing.

The tool reads a TOML file named ``config.toml`` from the per-user
application directory reported by :func:`click.get_app_dir` (for example
``~/.config/zing/`` on Linux). A different file can be passed explicitly.
When the file does not exist, built-in defaults are used.

The loader validates the type of every recognised key and returns a
:class:`Config` object. If the file is malformed or a value has the wrong
type or range, a :class:`ConfigError` is raised. Unknown keys are ignored.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click


logger = logging.getLogger(__name__)
# Attach a null handler so library use without logging configuration stays
# quiet. Messages still propagate once the CLI configures the root logger.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


PROVIDERS = ("openai", "local", "ollama")
STYLES = ("conventional", "detailed", "custom")
COLOR_MODES = ("auto", "always", "never")
DIFF_FORMATS = ("unified", "minimal", "patience")

DEFAULT_TYPE_PREFIXES = ("feat", "fix", "docs", "style", "refactor", "test", "chore")

DEFAULT_CONFIG_TOML = """\
[ai]
provider = "local"          # "openai" or "local"
model = "llama2"
max_tokens = 500
temperature = 0.7

[ai.ollama]
url = "http://localhost:11434/api/chat"

[commit]
style = "conventional"      # "conventional", "detailed" or "custom"
scope = true
breaking = true
max_length = 72
scope_prefix = ["feat", "fix", "docs", "style", "refactor", "test", "chore"]
jira = true
co_authors = []
sign = false
emojis = false
verify = true

[system]
max_retries = 3
retry_delay = 2             # seconds
timeout = 30                # seconds
git_hooks_path = ".git/hooks"
ignore_paths = [".env", "*.lock", "node_modules/"]

[display]
debug = false
color_mode = "auto"         # "auto", "always" or "never"
show_diff = true
quiet = false
diff_format = "unified"     # "unified", "minimal" or "patience"
"""


class ConfigError(Exception):
    """Raised when the configuration file is malformed or invalid."""

    pass


@dataclass(frozen=True)
class StylePolicy:
    """Commit-message style rules, read-only during a pipeline run."""

    style: str = "conventional"
    allowed_type_prefixes: Tuple[str, ...] = DEFAULT_TYPE_PREFIXES
    scope_required: bool = True
    breaking_change_allowed: bool = True
    max_subject_length: int = 72
    ticket_integration: bool = True
    verify: bool = True


@dataclass
class AIConfig:
    provider: str = "local"
    model: str = "llama2"
    max_tokens: int = 500
    temperature: float = 0.7
    local_url: str = "http://localhost:11434/api/chat"


@dataclass
class CommitConfig:
    style: str = "conventional"
    scope: bool = True
    breaking: bool = True
    max_length: int = 72
    scope_prefix: List[str] = field(default_factory=lambda: list(DEFAULT_TYPE_PREFIXES))
    jira: bool = True
    co_authors: List[str] = field(default_factory=list)
    sign: bool = False
    emojis: bool = False
    verify: bool = True


@dataclass
class SystemConfig:
    max_retries: int = 3
    retry_delay: float = 2
    timeout: float = 30
    git_hooks_path: str = ".git/hooks"
    cache_path: str = field(default_factory=lambda: str(Path.home() / ".cache" / "zing" / "commits.json"))
    ignore_paths: List[str] = field(default_factory=lambda: [".env", "*.lock", "node_modules/"])


@dataclass
class DisplayConfig:
    debug: bool = False
    color_mode: str = "auto"
    show_diff: bool = True
    quiet: bool = False
    diff_format: str = "unified"


@dataclass
class Config:
    """Validated zing configuration."""

    ai: AIConfig = field(default_factory=AIConfig)
    commit: CommitConfig = field(default_factory=CommitConfig)
    system: SystemConfig = field(default_factory=SystemConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)

    def style_policy(self) -> StylePolicy:
        """Derive the :class:`StylePolicy` used by the message pipeline."""
        return StylePolicy(
            style=self.commit.style,
            allowed_type_prefixes=tuple(self.commit.scope_prefix),
            scope_required=self.commit.scope,
            breaking_change_allowed=self.commit.breaking,
            max_subject_length=self.commit.max_length,
            ticket_integration=self.commit.jira,
            verify=self.commit.verify,
        )


def _get_config_directory() -> Path:
    """Return the per-user directory holding ``config.toml``."""
    return Path(click.get_app_dir("zing"))


def default_config_path() -> Path:
    return _get_config_directory() / "config.toml"


# ---------------------------------------------------------------------------
# Typed accessors
# ---------------------------------------------------------------------------

def _table(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a table")
    return value


def _get_str(table: Dict[str, Any], section: str, key: str, default: str,
             choices: Optional[Tuple[str, ...]] = None) -> str:
    value = table.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"'{section}.{key}' must be a string")
    if choices is not None and value not in choices:
        raise ConfigError(f"'{section}.{key}' must be one of: {', '.join(choices)}")
    return value


def _get_bool(table: Dict[str, Any], section: str, key: str, default: bool) -> bool:
    value = table.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"'{section}.{key}' must be a boolean")
    return value


def _get_int(table: Dict[str, Any], section: str, key: str, default: int, minimum: int) -> int:
    value = table.get(key, default)
    # bool is a subclass of int; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{section}.{key}' must be an integer")
    if value < minimum:
        raise ConfigError(f"'{section}.{key}' must be at least {minimum}")
    return value


def _get_number(table: Dict[str, Any], section: str, key: str, default: float) -> float:
    value = table.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{section}.{key}' must be a number")
    return float(value)


def _get_str_list(table: Dict[str, Any], section: str, key: str, default: List[str]) -> List[str]:
    value = table.get(key, default)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"'{section}.{key}' must be a list of strings")
    return list(value)


def parse_config(data: Dict[str, Any]) -> Config:
    """Validate a decoded TOML document and build a :class:`Config`.

    Raises
    ------
    ConfigError
        If a recognised key has the wrong type or an out-of-range value.
    """
    defaults = Config()

    ai = _table(data, "ai")
    ollama = _table(ai, "ollama")
    temperature = _get_number(ai, "ai", "temperature", defaults.ai.temperature)
    if not 0.0 <= temperature <= 2.0:
        raise ConfigError("'ai.temperature' must be between 0 and 2")
    ai_config = AIConfig(
        provider=_get_str(ai, "ai", "provider", defaults.ai.provider, PROVIDERS),
        model=_get_str(ai, "ai", "model", defaults.ai.model),
        max_tokens=_get_int(ai, "ai", "max_tokens", defaults.ai.max_tokens, minimum=1),
        temperature=temperature,
        local_url=_get_str(ollama, "ai.ollama", "url", defaults.ai.local_url),
    )

    commit = _table(data, "commit")
    prefixes = _get_str_list(commit, "commit", "scope_prefix", defaults.commit.scope_prefix)
    if not prefixes:
        raise ConfigError("'commit.scope_prefix' must not be empty")
    commit_config = CommitConfig(
        style=_get_str(commit, "commit", "style", defaults.commit.style, STYLES),
        scope=_get_bool(commit, "commit", "scope", defaults.commit.scope),
        breaking=_get_bool(commit, "commit", "breaking", defaults.commit.breaking),
        max_length=_get_int(commit, "commit", "max_length", defaults.commit.max_length, minimum=1),
        scope_prefix=prefixes,
        jira=_get_bool(commit, "commit", "jira", defaults.commit.jira),
        co_authors=_get_str_list(commit, "commit", "co_authors", defaults.commit.co_authors),
        sign=_get_bool(commit, "commit", "sign", defaults.commit.sign),
        emojis=_get_bool(commit, "commit", "emojis", defaults.commit.emojis),
        verify=_get_bool(commit, "commit", "verify", defaults.commit.verify),
    )

    system = _table(data, "system")
    retry_delay = _get_number(system, "system", "retry_delay", defaults.system.retry_delay)
    if retry_delay < 0:
        raise ConfigError("'system.retry_delay' must not be negative")
    timeout = _get_number(system, "system", "timeout", defaults.system.timeout)
    if timeout <= 0:
        raise ConfigError("'system.timeout' must be positive")
    system_config = SystemConfig(
        max_retries=_get_int(system, "system", "max_retries", defaults.system.max_retries, minimum=1),
        retry_delay=retry_delay,
        timeout=timeout,
        git_hooks_path=_get_str(system, "system", "git_hooks_path", defaults.system.git_hooks_path),
        cache_path=str(Path(_get_str(system, "system", "cache_path", defaults.system.cache_path)).expanduser()),
        ignore_paths=_get_str_list(system, "system", "ignore_paths", defaults.system.ignore_paths),
    )

    display = _table(data, "display")
    display_config = DisplayConfig(
        debug=_get_bool(display, "display", "debug", defaults.display.debug),
        color_mode=_get_str(display, "display", "color_mode", defaults.display.color_mode, COLOR_MODES),
        show_diff=_get_bool(display, "display", "show_diff", defaults.display.show_diff),
        quiet=_get_bool(display, "display", "quiet", defaults.display.quiet),
        diff_format=_get_str(display, "display", "diff_format", defaults.display.diff_format, DIFF_FORMATS),
    )

    return Config(ai=ai_config, commit=commit_config, system=system_config, display=display_config)


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load and validate the zing configuration.

    Args:
        config_path: Explicit file to read. Defaults to ``config.toml`` in
                     the per-user application directory.

    Returns:
        The validated :class:`Config`. Defaults are returned when the file
        does not exist.

    Raises:
        ConfigError: If the file cannot be read, is not valid TOML, or
                     contains invalid values.
    """
    path = config_path if config_path is not None else default_config_path()

    if not path.exists():
        logger.debug("Configuration file '%s' does not exist; using defaults", path)
        return Config()

    try:
        data: Dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid TOML in {path.name}: {exc}") from exc

    config = parse_config(data)
    logger.debug("Loaded configuration from: %s", path)
    return config


def write_default_config(config_path: Optional[Path] = None) -> Path:
    """Write the default configuration file unless one already exists."""
    path = config_path if config_path is not None else default_config_path()
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(DEFAULT_CONFIG_TOML, encoding="utf-8")
        logger.debug("Wrote default configuration to: %s", path)
    return path
