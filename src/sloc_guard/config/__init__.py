from __future__ import annotations

from sloc_guard.config.expires import ExpiredRule, collect_expired_rules
from sloc_guard.config.extends import MAX_EXTENDS_DEPTH, ConfigSource, ExtendsResolver
from sloc_guard.config.loader import ConfigLoader, LoadedConfig, build_config
from sloc_guard.config.merge import RESET_MARKER, merge_values
from sloc_guard.config.model import Config
from sloc_guard.config.remote import FetchPolicy

__all__ = [
    "Config",
    "ConfigLoader",
    "ConfigSource",
    "ExpiredRule",
    "ExtendsResolver",
    "FetchPolicy",
    "LoadedConfig",
    "MAX_EXTENDS_DEPTH",
    "RESET_MARKER",
    "build_config",
    "collect_expired_rules",
    "merge_values",
]
