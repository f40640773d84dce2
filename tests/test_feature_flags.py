import pytest

from app.msa.constants import DEFAULT_FEATURE_FLAGS, FEATURE_FLAG_NAMES
from app.msa.feature_flags import (
    FeatureFlagResolver,
    UnknownFlagError,
    merge_flag_layers,
    parse_flag_value,
    require_feature,
)


def test_defaults_when_nothing_is_set():
    flags = FeatureFlagResolver(environ={}).get_flags()
    assert dict(flags) == DEFAULT_FEATURE_FLAGS
    assert set(flags) == set(FEATURE_FLAG_NAMES)
    assert all(isinstance(v, bool) for v in flags.values())


def test_layers_apply_in_order():
    resolver = FeatureFlagResolver(
        environ={"ENV": "development", "FEATURE_B": "false"},
        defaults={"a": False, "b": True},
        presets={"development": {"a": True}},
        env_vars={"b": "FEATURE_B"},
    )
    assert dict(resolver.get_flags()) == {"a": True, "b": False}


def test_env_variable_beats_mode_preset():
    resolver = FeatureFlagResolver(
        environ={"ENV": "development", "FEATURE_A": "false"},
        defaults={"a": False},
        presets={"development": {"a": True}},
        env_vars={"a": "FEATURE_A"},
    )
    assert resolver.is_enabled("a") is False


def test_development_preset_only_applies_in_development():
    dev = FeatureFlagResolver(environ={"ENV": "development"}).get_flags()
    prod = FeatureFlagResolver(environ={"ENV": "production"}).get_flags()
    assert dev["bulk_property_actions"] is True
    assert dev["advanced_property_filters"] is True
    assert dev["property_comparison"] is True
    assert prod["bulk_property_actions"] is False
    assert prod["advanced_property_filters"] is False


@pytest.mark.parametrize("raw", ["TRUE", "True", "1", "yes", "on", "", " true"])
def test_only_exact_true_enables(raw):
    assert parse_flag_value(raw) is False
    resolver = FeatureFlagResolver(environ={"FEATURE_BULK_ACTIONS": raw})
    assert resolver.is_enabled("bulk_property_actions") is False


def test_exact_true_enables():
    assert parse_flag_value("true") is True
    resolver = FeatureFlagResolver(environ={"FEATURE_BULK_ACTIONS": "true"})
    assert resolver.is_enabled("bulk_property_actions") is True


def test_non_true_value_disables_a_default_on_flag():
    resolver = FeatureFlagResolver(environ={"FEATURE_QUICK_TOGGLE_SOLD": "yes"})
    assert resolver.is_enabled("quick_toggle_sold") is False


def test_resolution_is_memoized_until_reset():
    environ = {}
    resolver = FeatureFlagResolver(environ=environ)
    first = resolver.get_flags()
    environ["FEATURE_PROPERTY_ANALYTICS"] = "false"
    assert resolver.get_flags() is first
    assert resolver.is_enabled("property_analytics") is True

    resolver.reset()
    assert resolver.get_flags() is not first
    assert resolver.is_enabled("property_analytics") is False


def test_override_changes_only_named_flags():
    resolver = FeatureFlagResolver(environ={})
    before = dict(resolver.get_flags())
    after = dict(resolver.override({"virtual_tours": True}))
    assert after["virtual_tours"] is True
    assert {k: v for k, v in after.items() if k != "virtual_tours"} == {
        k: v for k, v in before.items() if k != "virtual_tours"
    }
    assert resolver.is_enabled("virtual_tours") is True


def test_override_is_dropped_by_reset():
    resolver = FeatureFlagResolver(environ={})
    resolver.override({"virtual_tours": True})
    resolver.reset()
    assert resolver.is_enabled("virtual_tours") is False


def test_unknown_flag_lookup_raises():
    resolver = FeatureFlagResolver(environ={})
    with pytest.raises(UnknownFlagError):
        resolver.is_enabled("dark_mode")
    with pytest.raises(KeyError):
        resolver.get_flags()["dark_mode"]


def test_unknown_flag_override_raises():
    resolver = FeatureFlagResolver(environ={})
    with pytest.raises(UnknownFlagError):
        resolver.override({"dark_mode": True})


def test_merge_rejects_unknown_keys():
    with pytest.raises(UnknownFlagError):
        merge_flag_layers({"a": True}, {"b": False})


def test_env_var_table_must_name_known_flags():
    with pytest.raises(UnknownFlagError):
        FeatureFlagResolver(environ={}, defaults={"a": True}, env_vars={"b": "FEATURE_B"})


def test_require_feature_rejects_unknown_names():
    with pytest.raises(UnknownFlagError):
        require_feature("dark_mode")


def test_snapshot_is_read_only():
    flags = FeatureFlagResolver(environ={}).get_flags()
    with pytest.raises(TypeError):
        flags["quick_toggle_sold"] = False  # type: ignore[index]


def test_explicit_mode_beats_environment():
    resolver = FeatureFlagResolver(environ={"ENV": "production"}, mode="development")
    assert resolver.mode == "development"
    assert resolver.is_enabled("bulk_property_actions") is True

    resolver = FeatureFlagResolver(environ={}, mode="Production ")
    assert resolver.mode == "production"
    assert resolver.is_enabled("bulk_property_actions") is False
