"""
Configuration management for the fingerprint matching core.

This module provides the tunable constants of every pipeline stage as
dataclasses, and utilities for loading them from YAML files.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union
import math

import yaml


@dataclass
class PreprocessingConfig:
    """Configuration for image normalization and gallery enhancement."""
    normalization_size: int = 500
    # Images already within this many pixels of the target are not resized
    size_tolerance: int = 10
    clahe_clip_limit: float = 3.0
    clahe_tile_size: tuple = (8, 8)
    bilateral_diameter: int = 5
    bilateral_sigma_color: float = 20.0
    bilateral_sigma_space: float = 20.0
    unsharp_sigma: float = 0.6
    unsharp_amount: float = 0.6


@dataclass
class SkeletonConfig:
    """Configuration for binarization and Zhang-Suen thinning."""
    working_size: int = 300
    max_iterations: int = 25
    early_termination: bool = True
    # Fraction of total pixels a sub-iteration must delete to keep going
    min_deletion_fraction: float = 0.002
    min_deletions_floor: int = 5


@dataclass
class DetectorConfig:
    """Configuration for minutiae detection on the skeleton."""
    border_margin: int = 5
    min_distance: float = 10.0


@dataclass
class DescriptorConfig:
    """Configuration for local neighborhood descriptors."""
    radius: float = 40.0
    max_neighbors: int = 8


@dataclass
class MatcherConfig:
    """
    Scoring constants of the descriptor matcher.

    The tiered multipliers and ratio breakpoints are empirical calibration
    values; they are grouped here so they can be retuned without touching
    the matching logic.
    """
    min_minutiae: int = 5
    count_ratio_floor: float = 0.5
    count_ratio_score: float = 0.3

    # Descriptor pair scoring
    angle_tolerance: float = math.pi / 2
    neighbor_distance_tolerance: float = 8.0
    neighbor_angle_tolerance: float = 0.3
    one_sided_neighbor_score: float = 0.2
    empty_neighbor_score: float = 0.5
    angle_weight: float = 0.3
    neighbor_weight: float = 0.7
    strong_component_threshold: float = 0.7
    weak_component_penalty: float = 0.6

    # Assignment
    acceptance_threshold: float = 0.75
    high_quality_threshold: float = 0.85

    # Aggregation tiers
    low_ratio_breakpoint: float = 0.2
    low_ratio_multiplier: float = 0.3
    weak_ratio_breakpoint: float = 0.3
    weak_ratio_multiplier: float = 0.6
    moderate_ratio_breakpoint: float = 0.5
    moderate_ratio_multiplier: float = 0.85
    quality_boost: float = 1.15
    quality_boost_min_count: int = 3

    match_threshold: float = 0.7


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    log_dir: str = "logs"
    console_output: bool = True
    file_output: bool = False


@dataclass
class Config:
    """
    Main configuration container for the matching core.

    Attributes:
        preprocessing: Image normalization settings
        skeleton: Binarization and thinning settings
        detector: Minutiae detection settings
        descriptor: Local descriptor settings
        matcher: Similarity scoring settings
        logging: Logging configuration
    """
    preprocessing: PreprocessingConfig = field(default_factory=PreprocessingConfig)
    skeleton: SkeletonConfig = field(default_factory=SkeletonConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    descriptor: DescriptorConfig = field(default_factory=DescriptorConfig)
    matcher: MatcherConfig = field(default_factory=MatcherConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        Dictionary containing the configuration

    Raises:
        FileNotFoundError: If the configuration file does not exist
        yaml.YAMLError: If the YAML file is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    The override dictionary values take precedence over base values.

    Args:
        base: Base configuration dictionary
        override: Override configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def _build_section(section_cls: type, values: Optional[Dict[str, Any]]) -> Any:
    """Instantiate one config dataclass, rejecting unknown keys."""
    values = dict(values or {})
    known = {f.name for f in fields(section_cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(
            f"Unknown {section_cls.__name__} keys: {', '.join(sorted(unknown))}"
        )

    # YAML has no tuples
    for key, value in values.items():
        if isinstance(value, list):
            values[key] = tuple(value)

    return section_cls(**values)


_SECTIONS = {
    'preprocessing': PreprocessingConfig,
    'skeleton': SkeletonConfig,
    'detector': DetectorConfig,
    'descriptor': DescriptorConfig,
    'matcher': MatcherConfig,
    'logging': LoggingConfig,
}


def config_from_dict(config_dict: Dict[str, Any]) -> Config:
    """
    Build a Config from a nested dictionary.

    Missing sections and keys fall back to their defaults.

    Args:
        config_dict: Dictionary keyed by section name

    Returns:
        Config object

    Raises:
        ValueError: If a section or key is not recognized
    """
    unknown = set(config_dict) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown config sections: {', '.join(sorted(unknown))}")

    return Config(**{
        name: _build_section(section_cls, config_dict.get(name))
        for name, section_cls in _SECTIONS.items()
    })


def load_config(
    config_path: Union[str, Path],
    base_config_path: Optional[Union[str, Path]] = None
) -> Config:
    """
    Load configuration from YAML files.

    Optionally merges with a base configuration file.

    Args:
        config_path: Path to the main configuration file
        base_config_path: Optional path to base configuration to merge with

    Returns:
        Config object with loaded settings
    """
    config_dict = load_yaml(config_path)

    if base_config_path is not None:
        base_dict = load_yaml(base_config_path)
        config_dict = merge_configs(base_dict, config_dict)

    return config_from_dict(config_dict)


# Default configuration instance
DEFAULT_CONFIG = Config()
