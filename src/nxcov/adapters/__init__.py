"""Test-runner adapters for locating coverage output."""

from nxcov.adapters.jest import JestConfig, parse_show_config, probe_jest_config

__all__ = [
    "JestConfig",
    "parse_show_config",
    "probe_jest_config",
]
