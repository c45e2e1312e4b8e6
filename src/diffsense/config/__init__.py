"""
Configuration loading for DiffSense.

Provides the YAML rules loader and the built-in default rules. See
:mod:`diffsense.config.loader` for implementation details.
"""

from .loader import (  # noqa: F401
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_CONFIG_TEMPLATE,
    DEFAULT_RULES,
    ConfigError,
    DiffSenseConfig,
    config_to_dict,
    load_config,
    parse_config,
    read_config,
    write_default_config,
)
