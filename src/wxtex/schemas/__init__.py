"""Pydantic configuration schemas for wxtex.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
"""

from wxtex.schemas.resolve import resolve_config
from wxtex.schemas.internal import InternalConfig
from wxtex.schemas.param import ParamConfig
from wxtex.schemas.user import UserConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
]
