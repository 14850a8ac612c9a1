"""Consensus defaults for the contribution workflow."""

from __future__ import annotations

from dataclasses import dataclass

from .env import int_env_var
from .errors import ConfigurationError

DEFAULT_TRUST_THRESHOLD = 5
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class ConsensusConfig:
    threshold: int = DEFAULT_TRUST_THRESHOLD
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.threshold < 1:
            raise ConfigurationError("Consensus threshold must be at least 1")
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ConfigurationError("Default page size must be between 1 and the maximum")


def get_consensus_config() -> ConsensusConfig:
    return ConsensusConfig(threshold=int_env_var("CONSENSUS_THRESHOLD", DEFAULT_TRUST_THRESHOLD))
