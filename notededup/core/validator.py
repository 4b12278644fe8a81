from typing import Any, Dict, List

from loguru import logger

from notededup.core.errors import ConfigError
from notededup.core.factory import StepFactory


def validate_pipeline_config(config: Dict[str, Any]):
    """
    Validates a pipeline definition before any step is built.
    - 'steps' must be a list of {"type": <registered name>, "settings": {...}}.
    - 'settings' (the deduplication settings) must be a mapping if present.
    Raises ConfigError listing every problem found.
    """
    errors: List[str] = []

    if not isinstance(config, dict):
        raise ConfigError(f"Pipeline config must be a dict, got {type(config).__name__}")

    settings = config.get("settings")
    if settings is not None and not isinstance(settings, dict) and not hasattr(settings, "model_dump"):
        errors.append(f"'settings' must be a mapping, got {type(settings).__name__}")

    steps = config.get("steps", [])
    if not isinstance(steps, list):
        errors.append(f"'steps' must be a list, got {type(steps).__name__}")
        steps = []

    for idx, step_def in enumerate(steps):
        if not isinstance(step_def, dict):
            errors.append(f"step #{idx}: must be a dict, got {type(step_def).__name__}")
            continue
        step_type = step_def.get("type")
        if not step_type:
            errors.append(f"step #{idx}: missing 'type'")
        elif not StepFactory.is_registered(step_type):
            errors.append(f"step #{idx}: unknown type '{step_type}'")
        step_settings = step_def.get("settings", {})
        if not isinstance(step_settings, dict):
            errors.append(f"step #{idx}: 'settings' must be a dict")

    if errors:
        for err in errors:
            logger.error(f"Pipeline config: {err}")
        raise ConfigError("Invalid pipeline config: " + "; ".join(errors))
