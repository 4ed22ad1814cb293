"""Configuration for prompt-condenser.

Supports two sources:
  1. Environment variables (TARGET_RATIO, SYMBOL_DICTIONARY, ...)
  2. A JSON or YAML file named by CONDENSER_CONFIG
"""

import json
import os
import sys
from dataclasses import dataclass, field

import yaml

from prompt_condenser.errors import InvalidInputError, require_ratio
from prompt_condenser.pruner import SCORER_REGISTRY, ScoringWeights

_FALSE_VALUES = ("false", "0", "no", "")


def _parse_weights(raw: str) -> dict[str, float]:
    """Parse ``name:value,name:value`` into a dict of floats."""
    weights: dict[str, float] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" in pair:
            name, val = pair.rsplit(":", 1)
            weights[name.strip()] = float(val.strip())
    return weights


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class CondenserConfig:
    """Runtime settings for the pipeline, the MCP server and metrics."""

    target_ratio: float = 0.5
    dictionary_path: str | None = None
    extra_fillers: list[str] = field(default_factory=list)
    scorer: str = "heuristic"
    weights: dict[str, float] = field(default_factory=dict)
    host: str = "0.0.0.0"
    port: int = 9000
    metrics_enabled: bool = False
    metrics_port: int = 9090

    def validate(self) -> None:
        """Raise ValueError when a setting cannot be used."""
        try:
            self.target_ratio = require_ratio(self.target_ratio)
        except InvalidInputError as exc:
            raise ValueError(str(exc)) from None
        if self.scorer not in SCORER_REGISTRY:
            names = ", ".join(sorted(SCORER_REGISTRY))
            raise ValueError(f"unknown scorer {self.scorer!r}; registered scorers: {names}")
        ScoringWeights.from_mapping(self.weights)

    @classmethod
    def from_env(cls) -> "CondenserConfig":
        """Build config from environment variables; exits on an invalid value."""
        try:
            config = cls(
                target_ratio=float(os.environ.get("TARGET_RATIO", "0.5")),
                dictionary_path=os.environ.get("SYMBOL_DICTIONARY", "").strip() or None,
                extra_fillers=_split_list(os.environ.get("EXTRA_FILLERS", "")),
                scorer=os.environ.get("PRUNER_SCORER", "heuristic").strip(),
                weights=_parse_weights(os.environ.get("PRUNER_WEIGHTS", "")),
                host=os.environ.get("CONDENSER_HOST", "0.0.0.0"),
                port=int(os.environ.get("CONDENSER_PORT", "9000")),
                metrics_enabled=os.environ.get("METRICS_ENABLED", "false").strip().lower() not in _FALSE_VALUES,
                metrics_port=int(os.environ.get("METRICS_PORT", "9090")),
            )
            config.validate()
        except ValueError as exc:
            print(f"error: invalid configuration: {exc}", file=sys.stderr)
            sys.exit(1)
        return config

    @classmethod
    def from_file(cls, path: str) -> "CondenserConfig":
        """Load config from a JSON or YAML file.

        Raises:
            ValueError: The file is not a mapping or holds an invalid value.
        """
        with open(path) as f:
            text = f.read()
        if path.endswith(".json"):
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")

        fillers = raw.get("extra_fillers", [])
        if isinstance(fillers, str):
            fillers = _split_list(fillers)

        config = cls(
            target_ratio=raw.get("target_ratio", 0.5),
            dictionary_path=raw.get("dictionary_path"),
            extra_fillers=list(fillers),
            scorer=raw.get("scorer", "heuristic"),
            weights={k: float(v) for k, v in (raw.get("weights") or {}).items()},
            host=raw.get("host", "0.0.0.0"),
            port=int(raw.get("port", 9000)),
            metrics_enabled=bool(raw.get("metrics_enabled", False)),
            metrics_port=int(raw.get("metrics_port", 9090)),
        )
        config.validate()
        return config

    @classmethod
    def load(cls) -> "CondenserConfig":
        """Load config: CONDENSER_CONFIG file takes priority, falls back to env vars."""
        config_path = os.environ.get("CONDENSER_CONFIG")
        if config_path:
            return cls.from_file(config_path)
        return cls.from_env()
