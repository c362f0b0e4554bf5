import pytest

from gyrolinear import DEFAULT_FUSION_CONFIG, GRAVITY_EARTH, FusionConfig, InvalidConfiguration


def test_defaults():
    config = FusionConfig()
    assert config.mean_filter_window == 10
    assert config.min_sample_count == 30
    assert config.gravity == GRAVITY_EARTH
    assert config.epsilon == 1e-9
    assert not config.alternate_mounting
    assert DEFAULT_FUSION_CONFIG == config


@pytest.mark.parametrize("kwargs", [
    {"mean_filter_window": 0},
    {"mean_filter_window": -3},
    {"min_sample_count": -1},
    {"gravity": 0.0},
    {"epsilon": 0.0},
])
def test_validate_rejects_out_of_range(kwargs):
    with pytest.raises(InvalidConfiguration):
        FusionConfig(**kwargs).validate()


def test_invalid_configuration_is_a_value_error():
    with pytest.raises(ValueError):
        FusionConfig(mean_filter_window=0).validate()


def test_with_alternate_mounting_returns_copy():
    config = FusionConfig()
    alternate = config.with_alternate_mounting(True)
    assert alternate.alternate_mounting
    assert not config.alternate_mounting
    assert alternate.mean_filter_window == config.mean_filter_window


def test_from_env_defaults_when_unset():
    assert FusionConfig.from_env({}) == FusionConfig()


def test_from_env_reads_values():
    config = FusionConfig.from_env({
        "GYROLINEAR_MEAN_FILTER_WINDOW": "5",
        "GYROLINEAR_MIN_SAMPLE_COUNT": "12",
        "GYROLINEAR_GRAVITY": "9.81",
        "GYROLINEAR_EPSILON": "1e-6",
        "GYROLINEAR_ALTERNATE_MOUNTING": "true",
    })
    assert config.mean_filter_window == 5
    assert config.min_sample_count == 12
    assert config.gravity == 9.81
    assert config.epsilon == 1e-6
    assert config.alternate_mounting


@pytest.mark.parametrize("value,expected", [("1", True), ("YES", True), ("0", False), ("off", False)])
def test_from_env_alternate_mounting_flag(value, expected):
    config = FusionConfig.from_env({"GYROLINEAR_ALTERNATE_MOUNTING": value})
    assert config.alternate_mounting is expected


def test_from_env_rejects_unparseable_value():
    with pytest.raises(InvalidConfiguration):
        FusionConfig.from_env({"GYROLINEAR_MEAN_FILTER_WINDOW": "ten"})


def test_from_env_validates():
    with pytest.raises(InvalidConfiguration):
        FusionConfig.from_env({"GYROLINEAR_MEAN_FILTER_WINDOW": "0"})
