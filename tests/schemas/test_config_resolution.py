"""Test config resolution and validation with Pydantic."""

import pytest
from pydantic import ValidationError

from spatab.schemas import ParamConfig, UserConfig, InternalConfig, default_config
from spatab.schemas.resolve import resolve_config, deep_merge

pytestmark = pytest.mark.unit


class TestConfigResolution:
    """Test resolve_config() precedence and merging."""

    def test_resolve_config_all_defaults(self):
        """Resolving with no user overrides uses all ParamConfig defaults."""
        config = resolve_config(ParamConfig(), None)

        assert isinstance(config, InternalConfig)
        assert config.package.compression == "snappy"
        assert config.package.batch_size == 65536
        assert config.legacy.text_field_size == 254
        assert config.legacy.float_decimals == 15
        assert config.geometry.equality_tolerance == 1e-9
        assert config.reader.max_rows is None
        assert config.logging.level == "INFO"

    def test_user_config_overrides_param_config(self):
        """UserConfig values override ParamConfig defaults."""
        config = resolve_config(ParamConfig(), UserConfig(compression="zstd"))

        assert config.package.compression == "zstd"
        # untouched sections keep defaults
        assert config.package.batch_size == 65536

    def test_dict_inputs_are_accepted(self):
        """Both layers may be given as plain dicts."""
        config = resolve_config({"reader": {"max_rows": 10}}, {"BATCH_SIZE": 4})

        assert config.reader.max_rows == 10
        assert config.package.batch_size == 4

    def test_empty_user_config_uses_all_param_defaults(self):
        """Empty UserConfig() doesn't override anything."""
        config = resolve_config(ParamConfig(), UserConfig())
        assert config == resolve_config(ParamConfig(), None)

    def test_nested_overrides_win_over_flat_aliases(self):
        """Nested sections are applied after the flat aliases."""
        user = UserConfig(batch_size=8, package={"batch_size": 16})
        config = resolve_config(ParamConfig(), user)

        assert config.package.batch_size == 16

    def test_default_config_is_cached(self):
        """default_config() resolves the expert defaults once."""
        assert default_config() is default_config()
        assert default_config().package.compression == "snappy"


class TestValidation:
    """Invalid values fail at resolution time, never at runtime."""

    def test_unknown_compression_rejected(self):
        with pytest.raises(ValidationError):
            resolve_config(ParamConfig(), UserConfig(compression="lz4"))

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            resolve_config(ParamConfig(), UserConfig(batch_size=0))

    def test_decimals_must_fit_field(self):
        """float_decimals must leave room for sign, digit and point."""
        with pytest.raises(ValidationError, match="does not fit"):
            resolve_config(ParamConfig(), UserConfig(float_decimals=22))

    def test_text_field_size_limit(self):
        with pytest.raises(ValidationError):
            resolve_config(ParamConfig(), UserConfig(legacy={"text_field_size": 300}))

    def test_param_config_forbids_unknown_fields(self):
        with pytest.raises(ValidationError):
            ParamConfig(unknown_section={})

    def test_internal_config_is_frozen(self):
        config = resolve_config(ParamConfig(), None)
        with pytest.raises(ValidationError):
            config.logging = config.logging.model_copy(update={"level": "DEBUG"})


class TestDeepMerge:
    """Test recursive dictionary merge."""

    def test_nested_merge(self):
        base = {"a": 1, "b": {"c": 2, "d": 3}}
        override = {"b": {"d": 4, "e": 5}, "f": 6}

        assert deep_merge(base, override) == {"a": 1, "b": {"c": 2, "d": 4, "e": 5}, "f": 6}

    def test_base_is_not_modified(self):
        base = {"b": {"c": 2}}
        deep_merge(base, {"b": {"c": 3}})
        assert base == {"b": {"c": 2}}
