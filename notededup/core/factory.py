from typing import Any, Dict

from notededup.core.errors import ConfigError
from notededup.steps.chronology import ChronologyStep
from notededup.steps.complementary import ComplementaryMergeStep
from notededup.steps.exact import ExactDedupStep
from notededup.steps.near_duplicates import NearDedupStep
from notededup.steps.normalize import NormalizeStep
from notededup.steps.sentences import SentenceDedupStep


class StepFactory:
    _registry = {
        "normalize": NormalizeStep,
        "exact_dedup": ExactDedupStep,
        "near_dedup": NearDedupStep,
        "sentence_dedup": SentenceDedupStep,
        "complementary_merge": ComplementaryMergeStep,
        "chronology": ChronologyStep,
    }

    @classmethod
    def register(cls, name: str, step_class):
        cls._registry[name] = step_class

    @classmethod
    def unregister(cls, name: str):
        cls._registry.pop(name, None)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._registry

    @classmethod
    def create(cls, step_def: Dict[str, Any]):
        step_type = step_def["type"]
        step_config = step_def.get("settings", {})

        step_class = cls._registry.get(step_type)
        if not step_class:
            raise ConfigError(f"Step type '{step_type}' not registered.")

        return step_class(step_config)
