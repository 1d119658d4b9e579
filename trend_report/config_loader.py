"""Load reporter configuration from YAML files."""

from pathlib import Path

import aiofiles
import yaml
from pydantic import ValidationError

from trend_report.config import ReporterConfig


async def load_reporter_config(config_path: Path) -> ReporterConfig:
    """Load and validate a reporter configuration file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated reporter configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty, not valid YAML, or fails validation

    """
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    async with aiofiles.open(config_path, encoding="utf-8") as f:
        content = await f.read()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty config file: {config_path}")

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid reporter config schema in {config_path}: expected a mapping"
        )

    try:
        return ReporterConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid reporter config schema in {config_path}: {e}") from e
