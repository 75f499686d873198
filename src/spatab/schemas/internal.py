"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized and immutable. Codec and table code read fields directly, with no
.get() calls and no fallback defaults.
"""

from typing import Literal, Optional
from pydantic import ConfigDict
from spatab.schemas.base import SpatabBaseModel


class InternalPackageConfig(SpatabBaseModel):
    """Runtime packaged-container configuration."""
    compression: Literal["snappy", "gzip", "zstd", "none"]
    batch_size: int
    geo_metadata_version: str


class InternalLegacyConfig(SpatabBaseModel):
    """Runtime legacy-format configuration."""
    text_field_size: int
    int_field_size: int
    float_field_size: int
    float_decimals: int
    encoding: str


class InternalGeometryConfig(SpatabBaseModel):
    """Runtime geometry settings."""
    equality_tolerance: float


class InternalReaderConfig(SpatabBaseModel):
    """Runtime read bounds."""
    max_rows: Optional[int]


class InternalLoggingConfig(SpatabBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class InternalConfig(SpatabBaseModel):
    """Authoritative runtime configuration.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        compression = config.package.compression  # NOT .get()
        decimals = config.legacy.float_decimals
    """

    package: InternalPackageConfig
    legacy: InternalLegacyConfig
    geometry: InternalGeometryConfig
    reader: InternalReaderConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
