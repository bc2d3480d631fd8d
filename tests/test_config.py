"""Tests for configuration loading."""

import math
from pathlib import Path

import pytest

from fingerprint_core.utils.config import (
    Config,
    DEFAULT_CONFIG,
    config_from_dict,
    load_config,
    merge_configs
)


DEFAULT_YAML = Path(__file__).resolve().parent.parent / "configs" / "default.yaml"


def test_defaults():
    config = Config()

    assert config.preprocessing.normalization_size == 500
    assert config.skeleton.working_size == 300
    assert config.skeleton.max_iterations == 25
    assert config.detector.border_margin == 5
    assert config.descriptor.radius == 40.0
    assert config.descriptor.max_neighbors == 8
    assert config.matcher.acceptance_threshold == 0.75
    assert config.matcher.high_quality_threshold == 0.85
    assert config.matcher.match_threshold == 0.7
    assert config.matcher.angle_tolerance == math.pi / 2


def test_shipped_yaml_matches_defaults():
    assert load_config(DEFAULT_YAML) == DEFAULT_CONFIG


def test_partial_yaml_keeps_other_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "matcher:\n"
        "  match_threshold: 0.6\n"
        "preprocessing:\n"
        "  clahe_tile_size: [4, 4]\n"
    )

    config = load_config(path)

    assert config.matcher.match_threshold == 0.6
    assert config.matcher.acceptance_threshold == 0.75
    assert config.preprocessing.clahe_tile_size == (4, 4)
    assert config.skeleton == DEFAULT_CONFIG.skeleton


def test_base_config_is_overridden(tmp_path):
    base = tmp_path / "base.yaml"
    base.write_text("descriptor:\n  radius: 30.0\n  max_neighbors: 6\n")
    override = tmp_path / "override.yaml"
    override.write_text("descriptor:\n  radius: 50.0\n")

    config = load_config(override, base_config_path=base)

    assert config.descriptor.radius == 50.0
    assert config.descriptor.max_neighbors == 6


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load_config(path) == DEFAULT_CONFIG


def test_unknown_key_rejected():
    with pytest.raises(ValueError, match="radiuss"):
        config_from_dict({"descriptor": {"radiuss": 10}})


def test_unknown_section_rejected():
    with pytest.raises(ValueError, match="gabor"):
        config_from_dict({"gabor": {}})


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_merge_configs_is_recursive():
    merged = merge_configs(
        {"a": {"x": 1, "y": 2}, "b": 3},
        {"a": {"y": 5}}
    )
    assert merged == {"a": {"x": 1, "y": 5}, "b": 3}
