"""Strict Pydantic base shared by the spatab configuration layers."""

from pydantic import BaseModel, ConfigDict


class SpatabBaseModel(BaseModel):
    """Base model for ParamConfig, UserConfig and InternalConfig sections.

    Unknown keys are rejected (UserConfig relaxes this), assignments are
    re-validated and string values are stripped.
    """

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )
