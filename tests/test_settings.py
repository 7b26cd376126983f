import pytest

from stardelta.core.errors import SchemaError
from stardelta.core.settings import EngineSettings


def test_defaults():
    settings = EngineSettings.from_env({})
    assert settings.curve_tolerance == 1.0
    assert settings.shape_padding == 0
    assert settings.shape_scale == 1.0
    assert settings.max_workers == 1


def test_environment_and_overrides():
    env = {"STARDELTA_CURVE_TOLERANCE": "2.5", "STARDELTA_MAX_WORKERS": "4"}
    settings = EngineSettings.from_env(env, max_workers=None, shape_padding=40)
    assert settings.curve_tolerance == 2.5
    assert settings.max_workers == 4
    assert settings.shape_padding == 40


def test_process_environment_is_read(monkeypatch):
    monkeypatch.setenv("STARDELTA_SHAPE_SCALE", "20")
    assert EngineSettings.from_env().shape_scale == 20.0


@pytest.mark.parametrize(
    "env",
    [
        {"STARDELTA_CURVE_TOLERANCE": "0"},
        {"STARDELTA_MAX_WORKERS": "zero"},
        {"STARDELTA_SHAPE_PADDING": "-1"},
    ],
)
def test_invalid_values(env):
    with pytest.raises(SchemaError):
        EngineSettings.from_env(env)


def test_tolerance_below_whole_twip_rounding_is_rejected():
    with pytest.raises(SchemaError):
        EngineSettings.from_env({}, curve_tolerance=0.5)
    assert EngineSettings.from_env({}, curve_tolerance=0.75).curve_tolerance == 0.75
