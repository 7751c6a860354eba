"""
Configuration loading for zing.

Provides the TOML loader and the validated :class:`Config` object. See
:mod:`zing.config.loader` for implementation details.
"""

from .loader import (  # noqa: F401
    Config,
    ConfigError,
    StylePolicy,
    load_config,
    write_default_config,
)
