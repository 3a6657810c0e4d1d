"""Models package for prompt-commons."""

from prompt_commons.models.base import Base
from prompt_commons.models.experiment import Experiment, ExperimentTag, ExperimentVersion

__all__ = [
    "Base",
    "Experiment",
    "ExperimentTag",
    "ExperimentVersion",
]
