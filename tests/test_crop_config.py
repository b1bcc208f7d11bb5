import dataclasses

import pytest

from plotcrop.models.crop_config import CropConfig


def test_defaults():
    config = CropConfig()
    assert config.edge_low_threshold == 60
    assert config.edge_high_threshold == 140
    assert config.dilation_iterations == 1
    assert config.min_area_percent == 20
    assert config.inset_margin_px == 10


def test_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        CropConfig().inset_margin_px = 3


@pytest.mark.parametrize("kwargs", [
    {"edge_low_threshold": -1},
    {"dilation_iterations": 1.5},
    {"edge_low_threshold": 150, "edge_high_threshold": 100},
    {"inset_margin_px": "10"},
    {"min_area_percent": True},
])
def test_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        CropConfig(**kwargs)


def test_from_env(monkeypatch):
    monkeypatch.setenv("CROP_EDGE_LOW_THRESHOLD", "40")
    monkeypatch.setenv("CROP_DILATION_ITERATIONS", "3")
    monkeypatch.setenv("CROP_INSET_MARGIN_PX", "4.5")
    config = CropConfig.from_env()
    assert config.edge_low_threshold == 40
    assert config.edge_high_threshold == 140
    assert config.dilation_iterations == 3
    assert config.inset_margin_px == 4.5


def test_with_overrides_ignores_none_and_coerces():
    config = CropConfig().with_overrides(dilation_iterations="2", inset_margin_px=None, min_area_percent="35")
    assert config.dilation_iterations == 2
    assert config.inset_margin_px == 10
    assert config.min_area_percent == 35.0


def test_with_overrides_rejects_unknown_option():
    with pytest.raises(ValueError):
        CropConfig().with_overrides(blur_radius=3)


@pytest.mark.parametrize("value", [[5], {"px": 5}, True, "wide"])
def test_with_overrides_rejects_non_numeric_values(value):
    with pytest.raises(ValueError, match="inset_margin_px"):
        CropConfig().with_overrides(inset_margin_px=value)
