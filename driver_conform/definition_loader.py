"""Load check definitions from checks.yaml files."""

import asyncio
from pathlib import Path

import yaml

from driver_conform.models.definition import CheckDefinition


async def load_check_definition(path: Path) -> CheckDefinition:
    """Load and validate a check definition.

    Args:
        path: Path to a checks.yaml file

    Returns:
        Validated check definition

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the file does not describe valid checks

    """
    if not path.is_file():
        raise FileNotFoundError(f"Check definition not found: {path}")

    text = await asyncio.to_thread(path.read_text, encoding="utf-8")
    data = yaml.safe_load(text) or {}
    return CheckDefinition.model_validate(data)
