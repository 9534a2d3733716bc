"""
Configuration and logging setup.

Export settings live in a frozen :class:`ExportConfig`.  They can be loaded
from a YAML file whose keys overlay the defaults::

    true_text: "ja"
    false_text: "nein"
    default_width: 20
    sheet_title: Orders
"""

import dataclasses
import logging
import os
from dataclasses import dataclass

import yaml

logger = logging.getLogger(__name__)

# Excel stores column widths in 1/256 of a character; 255 characters is the cap.
MAX_COLUMN_WIDTH = 255
DEFAULT_COLUMN_WIDTH = 30


@dataclass(frozen=True)
class ExportConfig:
    """Settings for one exporter.

    ``true_text`` / ``false_text`` are the words written for booleans, so a
    non-English report only needs a config change.
    """
    true_text: str = "yes"
    false_text: str = "no"
    default_width: int = DEFAULT_COLUMN_WIDTH
    max_width: int = MAX_COLUMN_WIDTH
    date_format: str = "yyyy-mm-dd"
    datetime_format: str = "yyyy-mm-dd hh:mm:ss"
    wrap_text: bool = True
    sheet_title: str = "Export"
    log_level: str = "INFO"

    def __post_init__(self):
        if self.default_width < 1:
            raise ValueError(
                f"default_width must be positive, got {self.default_width}")
        if not 1 <= self.max_width <= MAX_COLUMN_WIDTH:
            raise ValueError(
                f"max_width must be between 1 and {MAX_COLUMN_WIDTH}, "
                f"got {self.max_width}")
        if not self.date_format or not self.datetime_format:
            raise ValueError("date_format and datetime_format must not be empty")


def load_config(config_path=None) -> ExportConfig:
    """Load an :class:`ExportConfig` from a YAML file.

    A ``None`` or non-existent path gives the defaults.  Unknown keys are
    logged and ignored.
    """
    values = {}
    if config_path and os.path.exists(config_path):
        with open(config_path, "r") as f:
            values = yaml.safe_load(f) or {}
        if not isinstance(values, dict):
            raise ValueError(
                f"Config file {config_path} must hold a mapping, "
                f"got {type(values).__name__}")

    known = {f.name for f in dataclasses.fields(ExportConfig)}
    for key in sorted(set(values) - known):
        logger.warning(f"Ignoring unknown config key '{key}' in {config_path}")

    return ExportConfig(**{k: v for k, v in values.items() if k in known})


def setup_logging(level_str: str = "INFO"):
    """Configure logging."""
    level = getattr(logging, level_str.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )
