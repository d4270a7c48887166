"""Tests for bind-time counter options."""

import pytest

from autoincrement.core.modules.allocation.models import AllocationConfig
from autoincrement.core.modules.counter.models import CounterKey
from autoincrement.errors import ConfigurationError


class TestParse:
    """Tests for AllocationConfig.parse."""

    def test_string_shorthand(self):
        config = AllocationConfig.parse("User")
        assert config.collection_name == "User"
        assert config.field_name == "_id"
        assert config.start_at == 0
        assert config.increment_by == 1
        assert config.unique is True

    def test_camel_case_options(self):
        config = AllocationConfig.parse({"model": "User", "field": "userId", "startAt": 100, "incrementBy": 5, "unique": False})
        assert config.key == CounterKey("User", "userId")
        assert config.start_at == 100
        assert config.increment_by == 5
        assert config.unique is False

    def test_snake_case_options(self):
        config = AllocationConfig.parse({"model": "User", "start_at": 3, "increment_by": 2})
        assert config.start_at == 3
        assert config.increment_by == 2

    def test_negative_increment(self):
        config = AllocationConfig.parse({"model": "User", "startAt": 10, "incrementBy": -1})
        assert config.increment_by == -1
        assert config.initial_count == 11

    def test_missing_model(self):
        with pytest.raises(ConfigurationError, match="model must be set"):
            AllocationConfig.parse({"field": "userId"})

    def test_null_model(self):
        with pytest.raises(ConfigurationError, match="model must be set"):
            AllocationConfig.parse({"model": None})

    def test_options_of_wrong_type(self):
        with pytest.raises(ConfigurationError, match="model must be set"):
            AllocationConfig.parse(None)  # type: ignore[arg-type]
        with pytest.raises(ConfigurationError, match="model must be set"):
            AllocationConfig.parse(42)  # type: ignore[arg-type]

    def test_empty_model(self):
        with pytest.raises(ConfigurationError):
            AllocationConfig.parse("")

    def test_zero_increment(self):
        with pytest.raises(ConfigurationError, match="incrementBy"):
            AllocationConfig.parse({"model": "User", "incrementBy": 0})

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError):
            AllocationConfig.parse({"model": "User", "incrementOn": "update"})


class TestDerivedValues:
    """Tests for values derived from the options."""

    def test_initial_count_yields_start_at_first(self):
        config = AllocationConfig.parse({"model": "User", "startAt": 3, "incrementBy": 5})
        assert config.initial_count == -2
        assert config.initial_count + config.increment_by == config.start_at

    def test_identity_field_never_gets_extra_unique_index(self):
        assert AllocationConfig.parse("User").enforce_unique_field is False

    def test_secondary_field_unique_by_default(self):
        assert AllocationConfig.parse({"model": "User", "field": "userId"}).enforce_unique_field is True

    def test_secondary_field_unique_disabled(self):
        config = AllocationConfig.parse({"model": "User", "field": "userId", "unique": False})
        assert config.enforce_unique_field is False

    def test_configs_compare_by_value(self):
        assert AllocationConfig.parse("User") == AllocationConfig.parse({"model": "User", "startAt": 0})
        assert AllocationConfig.parse("User") != AllocationConfig.parse({"model": "User", "startAt": 1})
