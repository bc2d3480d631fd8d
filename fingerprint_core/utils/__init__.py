"""
Utility modules for the fingerprint matching core.
"""

from .config import (
    Config,
    PreprocessingConfig,
    SkeletonConfig,
    DetectorConfig,
    DescriptorConfig,
    MatcherConfig,
    LoggingConfig,
    config_from_dict,
    load_config,
    load_yaml,
    merge_configs,
    DEFAULT_CONFIG
)
from .logger import (
    ProgressTracker,
    get_logger,
    log_duration,
    setup_logger,
    setup_logging_from_config
)
from .io import (
    load_image,
    save_image,
    load_json,
    save_json,
    load_feature_set,
    save_feature_set,
    SUPPORTED_EXTENSIONS
)

__all__ = [
    # Config
    'Config',
    'PreprocessingConfig',
    'SkeletonConfig',
    'DetectorConfig',
    'DescriptorConfig',
    'MatcherConfig',
    'LoggingConfig',
    'config_from_dict',
    'load_config',
    'load_yaml',
    'merge_configs',
    'DEFAULT_CONFIG',
    # Logger
    'ProgressTracker',
    'get_logger',
    'log_duration',
    'setup_logger',
    'setup_logging_from_config',
    # IO
    'load_image',
    'save_image',
    'load_json',
    'save_json',
    'load_feature_set',
    'save_feature_set',
    'SUPPORTED_EXTENSIONS',
]
