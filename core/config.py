"""Detector configuration loaded from an optional YAML file."""
import os
import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

import yaml

from scan.file_reader import DEFAULT_MAX_FILE_SIZE
from scan.project_index import DEFAULT_IGNORE_DIRS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectorConfig:
    ignore_dirs: List[str] = field(default_factory=lambda: sorted(DEFAULT_IGNORE_DIRS))
    extra_ignore_dirs: List[str] = field(default_factory=list)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    analyzer_timeout: float = 10.0  # seconds per framework analyzer
    mixed_ecosystem_share: float = 0.3
    cache_enabled: bool = True
    cache_ttl_seconds: int = 86400
    rules_dir: Optional[str] = None  # None means the bundled rules/ directory
    exclude_frameworks: List[str] = field(default_factory=list)

    @property
    def effective_ignore_dirs(self) -> List[str]:
        return sorted(set(self.ignore_dirs) | set(self.extra_ignore_dirs))

    def with_overrides(self, **overrides: Any) -> "DetectorConfig":
        """Copy with the given fields replaced; None values leave a field unchanged."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_config(config_file: Optional[str] = None) -> DetectorConfig:
    """
    Load detector configuration from a YAML file.

    Args:
        config_file: Path to the YAML configuration file

    Returns:
        DetectorConfig with file values applied over the defaults. A missing
        or empty file yields the defaults; unknown keys are logged and ignored.
    """
    if not config_file or not os.path.exists(config_file):
        if config_file:
            logger.warning(f"Config file {config_file} not found, using defaults")
        return DetectorConfig()

    with open(config_file, 'r') as f:
        data = yaml.safe_load(f)

    if not data:
        return DetectorConfig()
    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_file} must contain a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(DetectorConfig)}
    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key '{key}' in {config_file}")
            continue
        values[key] = value

    logger.debug(f"Loaded config from {config_file}: {', '.join(sorted(values)) or 'no overrides'}")
    return DetectorConfig(**values)
