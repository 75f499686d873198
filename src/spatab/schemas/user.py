"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs with aliases for common naming patterns
(e.g., COMPRESSION -> compression, LOG_LEVEL -> log_level).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from spatab.schemas.base import SpatabBaseModel


class UserPackageConfig(SpatabBaseModel):
    """User-facing packaged-container config."""
    compression: Optional[str] = None
    batch_size: Optional[int] = None

    @field_validator("compression", mode="before")
    @classmethod
    def normalize_compression(cls, v):
        """Normalize codec names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class UserLegacyConfig(SpatabBaseModel):
    """User-facing legacy-format config."""
    text_field_size: Optional[int] = None
    int_field_size: Optional[int] = None
    float_field_size: Optional[int] = None
    float_decimals: Optional[int] = None
    encoding: Optional[str] = None


class UserConfig(SpatabBaseModel):
    """User-facing configuration schema.

    Usage
    -----
        user_cfg = UserConfig(compression="zstd", max_rows=10_000)
        internal = resolve_config(param_cfg, user_cfg)
    """

    # Flat aliases
    compression: Optional[str] = Field(None, alias="COMPRESSION")
    batch_size: Optional[int] = Field(None, alias="BATCH_SIZE")
    max_rows: Optional[int] = Field(None, alias="MAX_ROWS")
    float_decimals: Optional[int] = Field(None, alias="FLOAT_DECIMALS")
    encoding: Optional[str] = Field(None, alias="ENCODING")
    tolerance: Optional[float] = Field(None, alias="TOLERANCE")
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(
        None, alias="LOG_LEVEL"
    )

    # Nested overrides (advanced users)
    package: Optional[UserPackageConfig] = None
    legacy: Optional[UserLegacyConfig] = None

    model_config = SpatabBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("compression", mode="before")
    @classmethod
    def normalize_compression(cls, v):
        """Normalize codec names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lowercase level names."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    @field_validator("tolerance", mode="before")
    @classmethod
    def coerce_tolerance(cls, v):
        """Accept int or float for tolerance."""
        if v is not None:
            return float(v)
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        package = {}
        if self.compression is not None:
            package["compression"] = self.compression
        if self.batch_size is not None:
            package["batch_size"] = self.batch_size
        if self.package is not None:
            package.update(self.package.model_dump(exclude_none=True))
        if package:
            overrides["package"] = package

        legacy = {}
        if self.float_decimals is not None:
            legacy["float_decimals"] = self.float_decimals
        if self.encoding is not None:
            legacy["encoding"] = self.encoding
        if self.legacy is not None:
            legacy.update(self.legacy.model_dump(exclude_none=True))
        if legacy:
            overrides["legacy"] = legacy

        if self.tolerance is not None:
            overrides["geometry"] = {"equality_tolerance": self.tolerance}

        if self.max_rows is not None:
            overrides["reader"] = {"max_rows": self.max_rows}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
