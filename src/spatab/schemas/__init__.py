"""Pydantic configuration schemas for spatab.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
default_config : function
    Resolved expert defaults
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
"""

from spatab.schemas.resolve import resolve_config, default_config
from spatab.schemas.internal import InternalConfig
from spatab.schemas.param import ParamConfig
from spatab.schemas.user import UserConfig

__all__ = [
    'resolve_config',
    'default_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
]
