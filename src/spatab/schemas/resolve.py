"""Configuration resolution: expert defaults overlaid with user overrides.

resolve_config() is the only way runtime code obtains an InternalConfig.

Precedence (highest to lowest):
1. UserConfig (caller overrides)
2. ParamConfig (expert defaults)
"""

import logging
from functools import lru_cache
from typing import Optional, Type, TypeVar, Union

from pydantic import BaseModel

from spatab.schemas.internal import InternalConfig
from spatab.schemas.param import ParamConfig
from spatab.schemas.user import UserConfig

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Deep merge dictionaries; later ones win, nested dicts merge recursively.

    Examples
    --------
    >>> deep_merge({"a": 1, "b": {"c": 2, "d": 3}}, {"b": {"d": 4}, "f": 6})
    {'a': 1, 'b': {'c': 2, 'd': 4}, 'f': 6}
    """
    result = base.copy()
    for override in overrides:
        for key, value in override.items():
            if isinstance(result.get(key), dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            else:
                result[key] = value
    return result


def _as_model(value: Union[dict, ModelT, None], model: Type[ModelT]) -> ModelT:
    if isinstance(value, model):
        return value
    return model.model_validate(value or {})


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
) -> InternalConfig:
    """Resolve the runtime configuration.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert configuration with complete defaults.
    user_cfg : dict or UserConfig, optional
        Caller overrides; flat aliases (``COMPRESSION``) or nested sections.

    Returns
    -------
    InternalConfig
        Frozen, fully validated configuration.

    Raises
    ------
    pydantic.ValidationError
        If an override breaks an expert constraint (e.g. ``float_decimals``
        larger than the float field allows).

    Examples
    --------
    >>> config = resolve_config(ParamConfig(), UserConfig(compression="gzip"))
    >>> config.package.compression
    'gzip'
    """
    param = _as_model(param_cfg, ParamConfig)
    user = _as_model(user_cfg, UserConfig)

    overrides = user.to_internal_overrides()
    merged = deep_merge(param.model_dump(), overrides)

    # Overrides pass through the expert field constraints once more
    checked = ParamConfig.model_validate(merged)
    if overrides:
        logger.debug("Config overrides applied: %s", sorted(overrides))
    return InternalConfig.model_validate(checked.model_dump())


@lru_cache(maxsize=1)
def default_config() -> InternalConfig:
    """Resolved expert defaults, shared by calls that pass no config."""
    return resolve_config(ParamConfig())
