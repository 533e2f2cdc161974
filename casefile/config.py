"""
Runtime configuration for the Casefile Retrieval Engine.

Scoring constants live next to the code that uses them. This module only
gathers the knobs a host process may want to change at start-up.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TypeVar


T = TypeVar("T")

ENV_PREFIX = "CASEFILE_"


@dataclass(frozen=True)
class EngineConfig:
    """
    Start-up settings. Frozen once built.

    search_limit         — cases retrieved per RAG query
    cache_capacity       — entries held by the QueryFacade response cache
    autocomplete_limit   — suggestions merged across the ledger tries
    context_max_length   — character budget of the grounding context
    default_term_weight  — posting-list weight when no ingestion rule matches
    """
    search_limit: int = 3
    cache_capacity: int = 100
    autocomplete_limit: int = 8
    context_max_length: int = 6000
    default_term_weight: float = 0.5

    def __post_init__(self):
        for name in ("search_limit", "cache_capacity", "autocomplete_limit", "context_max_length"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.default_term_weight < 0:
            raise ValueError(
                f"default_term_weight must be non-negative, got {self.default_term_weight}"
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """
        Build a config from CASEFILE_* environment variables.

        Unset variables keep their defaults. Unparsable values raise
        ValueError naming the variable.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            search_limit=_read(env, "SEARCH_LIMIT", int, defaults.search_limit),
            cache_capacity=_read(env, "CACHE_CAPACITY", int, defaults.cache_capacity),
            autocomplete_limit=_read(env, "AUTOCOMPLETE_LIMIT", int, defaults.autocomplete_limit),
            context_max_length=_read(env, "CONTEXT_MAX_LENGTH", int, defaults.context_max_length),
            default_term_weight=_read(env, "DEFAULT_TERM_WEIGHT", float, defaults.default_term_weight),
        )


def _read(env: Mapping[str, str], name: str, cast: Callable[[str], T], default: T) -> T:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name}: cannot parse {raw!r}") from exc
