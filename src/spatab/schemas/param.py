"""ParamConfig: Expert defaults for the spatab engine.

This module defines the complete default configuration. ALL tunable engine
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from spatab.schemas.base import SpatabBaseModel


# =============================================================================
# Nested Configuration Models
# =============================================================================

class PackageConfig(SpatabBaseModel):
    """Single-file packaged container (Parquet) settings."""
    compression: Literal["snappy", "gzip", "zstd", "none"] = "snappy"
    batch_size: int = Field(65536, ge=1, description="Rows per record batch when reading")
    geo_metadata_version: str = "1.1.0"


class LegacyConfig(SpatabBaseModel):
    """Multi-component legacy format (shapefile set) settings."""
    text_field_size: int = Field(254, ge=1, le=254)
    int_field_size: int = Field(18, ge=1, le=20)
    float_field_size: int = Field(24, ge=3, le=40)
    float_decimals: int = Field(15, ge=0, le=30)
    encoding: str = "utf-8"

    @field_validator("float_decimals")
    @classmethod
    def decimals_fit_field(cls, v, info):
        """Decimals must leave room for the sign, a digit and the point."""
        size = info.data.get("float_field_size", 24)
        if v > size - 3:
            raise ValueError(f"float_decimals={v} does not fit float_field_size={size}")
        return v


class GeometryConfig(SpatabBaseModel):
    """Geometry comparison settings."""
    equality_tolerance: float = Field(1e-9, ge=0)

    @field_validator("equality_tolerance", mode="before")
    @classmethod
    def coerce_tolerance_to_float(cls, v):
        """Allow int or float for tolerance."""
        return float(v)


class ReaderConfig(SpatabBaseModel):
    """Codec read bounds."""
    max_rows: Optional[int] = Field(None, ge=0, description="Default row cap for read()")


class LoggingConfig(SpatabBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(SpatabBaseModel):
    """Complete expert configuration with all defaults.

    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg)

    Runtime code only sees InternalConfig.
    """

    package: PackageConfig = Field(default_factory=PackageConfig)
    legacy: LegacyConfig = Field(default_factory=LegacyConfig)
    geometry: GeometryConfig = Field(default_factory=GeometryConfig)
    reader: ReaderConfig = Field(default_factory=ReaderConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
