import pytest
import yaml

from src.cropper.chip import ChipDims
from src.cropper.config import DEFAULT_CFG, CropperConfig, parse_bool, parse_chip_dims


def test_defaults():
    cfg = CropperConfig.from_dict()
    assert cfg.chip_dims == ChipDims(300, 300)
    assert cfg.randomly_flip is True
    assert cfg.max_rotation_degrees == 30
    assert cfg.min_object_height == 0.25
    assert cfg.max_object_height == 0.7
    assert cfg.background_crops_fraction == 0.1
    assert cfg.seed is None
    assert cfg.to_dict() == {**DEFAULT_CFG, "chip_dims": [300, 300], "max_rotation_degrees": 30.0}


def test_overrides_and_roundtrip():
    cfg = CropperConfig.from_dict({"chip_dims": [150, 200], "seed": 9, "randomly_flip": False})
    assert cfg.chip_dims == ChipDims(150, 200)
    assert cfg.seed == 9
    assert CropperConfig.from_dict(cfg.to_dict()) == cfg


def test_negative_rotation_is_made_positive():
    assert CropperConfig.from_dict({"max_rotation_degrees": -12}).max_rotation_degrees == 12


@pytest.mark.parametrize("overrides", [
    {"min_object_height": 0.0},
    {"min_object_height": 1.0},
    {"max_object_height": 1.5},
    {"max_object_height": -0.1},
    {"background_crops_fraction": 1.0},
    {"background_crops_fraction": -0.01},
    {"chip_dims": [0, 10]},
    {"num_workers": 0},
    {"not_a_setting": 1},
])
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ValueError):
        CropperConfig.from_dict(overrides)


def test_background_fraction_bounds_accepted():
    assert CropperConfig.from_dict({"background_crops_fraction": 0.0}).background_crops_fraction == 0.0
    assert CropperConfig.from_dict({"background_crops_fraction": 0.99}).background_crops_fraction == 0.99


@pytest.mark.parametrize("value, expected", [
    (64, ChipDims(64, 64)),
    ([10, 20], ChipDims(10, 20)),
    ((10, 20), ChipDims(10, 20)),
    ({"rows": 5, "cols": 6}, ChipDims(5, 6)),
    (ChipDims(1, 2), ChipDims(1, 2)),
])
def test_parse_chip_dims(value, expected):
    assert parse_chip_dims(value) == expected


@pytest.mark.parametrize("value", ["300", [1, 2, 3], {"rows": 5}, True, [2.5, 3], {"rows": 4, "cols": 6.5}, [None, 3]])
def test_parse_chip_dims_rejects(value):
    with pytest.raises(ValueError):
        parse_chip_dims(value)


def test_load_yaml(tmp_path):
    p = tmp_path / "cropper.yaml"
    p.write_text(yaml.safe_dump({"chip_dims": [128, 96], "background_crops_fraction": 0.25, "seed": 3}))
    cfg = CropperConfig.load(p)
    assert cfg.chip_dims == ChipDims(128, 96)
    assert cfg.background_crops_fraction == 0.25
    assert cfg.seed == 3


def test_load_yaml_nested_block(tmp_path):
    p = tmp_path / "train.yaml"
    p.write_text(yaml.safe_dump({"cropper": {"max_rotation_degrees": 5}, "epochs": 10}))
    assert CropperConfig.load(p).max_rotation_degrees == 5


def test_load_empty_yaml_gives_defaults(tmp_path):
    p = tmp_path / "empty.yaml"
    p.write_text("")
    assert CropperConfig.load(p) == CropperConfig.from_dict()


def test_load_non_mapping_yaml(tmp_path):
    p = tmp_path / "list.yaml"
    p.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        CropperConfig.load(p)


@pytest.mark.parametrize("value, expected", [
    ("false", False), ("No", False), ("0", False), ("off", False),
    ("true", True), ("YES", True), ("1", True),
    (False, False), (True, True), (0, False),
])
def test_parse_bool(value, expected):
    assert parse_bool("randomly_flip", value) is expected


def test_parse_bool_rejects_garbage():
    with pytest.raises(ValueError):
        parse_bool("verbose", "maybe")


def test_string_booleans_from_yaml(tmp_path):
    p = tmp_path / "cropper.yaml"
    p.write_text('randomly_flip: "false"\nverbose: "no"\n')
    cfg = CropperConfig.load(p)
    assert cfg.randomly_flip is False
    assert cfg.verbose is False


def test_reversed_object_heights_accepted():
    cfg = CropperConfig.from_dict({"min_object_height": 0.7, "max_object_height": 0.25})
    assert (cfg.min_object_height, cfg.max_object_height) == (0.7, 0.25)
