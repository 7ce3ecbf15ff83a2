"""
Spotter - Configuration

Coaching configuration: meso block, cluster progression settings and
engine thresholds. Loads from config/progression.yaml if available, else
uses defaults. Connection settings come from the environment (.env).
"""
from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Union

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigError
from .models import ProgressionConfig
from .progression.engine import DecisionThresholds
from .progression.mesocycle import MesoBlock
from .progression.rulebook import DEFAULT_CLUSTER_CONFIGS, ExerciseCluster

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / 'config' / 'progression.yaml'
DEFAULT_POSTGRES_DSN = "postgresql://localhost:5432/spotter"


def load_config_yaml(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load configuration from YAML file, return empty dict if not found."""
    config_path = Path(path) if path else Path(os.getenv('SPOTTER_CONFIG', DEFAULT_CONFIG_PATH))
    if not config_path.exists():
        if path:
            raise ConfigError(f"Config file not found: {config_path}")
        return {}
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {config_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level")
    return data


def postgres_dsn() -> str:
    """Postgres DSN from SPOTTER_POSTGRES_DSN (.env supported)."""
    load_dotenv()
    return os.getenv('SPOTTER_POSTGRES_DSN', DEFAULT_POSTGRES_DSN)


def _cluster(name: str) -> ExerciseCluster:
    try:
        return ExerciseCluster(name)
    except ValueError as e:
        valid = ', '.join(c.value for c in ExerciseCluster)
        raise ConfigError(f"Unknown cluster '{name}' (expected one of: {valid})") from e


@dataclass
class CoachConfig:
    """Configuration for the progression coach.

    Loads from config/progression.yaml if available, else uses defaults.
    """

    meso_block: MesoBlock = field(default_factory=MesoBlock.reference)
    clusters: Dict[ExerciseCluster, ProgressionConfig] = field(
        default_factory=lambda: dict(DEFAULT_CLUSTER_CONFIGS)
    )
    exercise_clusters: Dict[str, ExerciseCluster] = field(default_factory=dict)
    spine_sensitive_exercises: FrozenSet[str] = frozenset()
    thresholds: DecisionThresholds = field(default_factory=DecisionThresholds)

    def __post_init__(self):
        missing = [c.value for c in ExerciseCluster if c not in self.clusters]
        if missing:
            raise ConfigError(f"Missing cluster settings: {', '.join(missing)}")

    @classmethod
    def from_yaml(cls, path: Optional[Union[str, Path]] = None) -> 'CoachConfig':
        """Load config from YAML file."""
        yaml_config = load_config_yaml(path)

        kwargs: Dict[str, Any] = {}

        if 'meso_block' in yaml_config:
            kwargs['meso_block'] = MesoBlock.from_rows(yaml_config['meso_block'])

        # Cluster overrides are partial: unspecified keys keep the defaults
        if 'clusters' in yaml_config:
            clusters = dict(DEFAULT_CLUSTER_CONFIGS)
            for name, values in (yaml_config['clusters'] or {}).items():
                cluster = _cluster(name)
                if values is not None and not isinstance(values, dict):
                    raise ConfigError(f"Settings for cluster '{name}' must be a mapping")
                clusters[cluster] = ProgressionConfig.from_dict(values or {}, defaults=clusters[cluster])
            kwargs['clusters'] = clusters

        if 'exercise_clusters' in yaml_config:
            kwargs['exercise_clusters'] = {
                str(exercise_id): _cluster(name)
                for exercise_id, name in (yaml_config['exercise_clusters'] or {}).items()
            }

        if 'spine_sensitive_exercises' in yaml_config:
            kwargs['spine_sensitive_exercises'] = frozenset(
                str(e) for e in (yaml_config['spine_sensitive_exercises'] or [])
            )

        if 'thresholds' in yaml_config:
            th = yaml_config['thresholds'] or {}
            if not isinstance(th, dict):
                raise ConfigError("thresholds must be a mapping")
            defaults = asdict(DecisionThresholds())
            unknown = sorted(str(key) for key in set(th) - set(defaults))
            if unknown:
                raise ConfigError(f"Unknown thresholds: {', '.join(unknown)}")
            try:
                kwargs['thresholds'] = DecisionThresholds(**{
                    key: type(default)(th.get(key, default))
                    for key, default in defaults.items()
                })
            except (TypeError, ValueError) as e:
                if isinstance(e, ConfigError):
                    raise
                raise ConfigError(f"Invalid threshold value: {e}") from e

        config = cls(**kwargs)
        logger.debug(f"Loaded coach config ({len(config.exercise_clusters)} explicit exercise clusters)")
        return config
