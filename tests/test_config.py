"""Coach configuration loading."""

from dataclasses import replace

import pytest

from spotter.config import DEFAULT_POSTGRES_DSN, CoachConfig, load_config_yaml, postgres_dsn
from spotter.exceptions import ConfigError
from spotter.models import MesoPhase, ProgressionConfig
from spotter.progression.engine import DecisionThresholds
from spotter.progression.rulebook import DEFAULT_CLUSTER_CONFIGS, ExerciseCluster


def write(tmp_path, text):
    path = tmp_path / "progression.yaml"
    path.write_text(text)
    return path


def test_defaults():
    config = CoachConfig()
    assert config.meso_block.phase(11) == MesoPhase.DELOAD
    assert config.clusters == DEFAULT_CLUSTER_CONFIGS
    assert config.thresholds.rir_tolerance == 0.5
    assert config.exercise_clusters == {}


def test_shipped_config_matches_defaults():
    config = CoachConfig.from_yaml()
    assert config.clusters == DEFAULT_CLUSTER_CONFIGS
    assert config.thresholds == CoachConfig().thresholds
    assert config.meso_block.phase(4) == MesoPhase.MID


def test_from_yaml_overrides(tmp_path):
    path = write(tmp_path, """
meso_block:
  - weeks: [1, 4]
    phase: early
  - weeks: [5, 8]
    phase: late
  - weeks: [9, null]
    phase: deload
clusters:
  pump_isolation:
    max_sets: 5
exercise_clusters:
  back_extension: low_back_stability
spine_sensitive_exercises:
  - romanian_deadlift
thresholds:
  rir_tolerance: 1.0
""")
    config = CoachConfig.from_yaml(path)

    assert config.meso_block.phase(4) == MesoPhase.EARLY
    assert config.meso_block.phase(9) == MesoPhase.DELOAD
    pump = config.clusters[ExerciseCluster.PUMP_ISOLATION]
    assert pump.max_sets == 5
    assert pump.min_sets == DEFAULT_CLUSTER_CONFIGS[ExerciseCluster.PUMP_ISOLATION].min_sets
    assert config.clusters[ExerciseCluster.PRIMARY_PRESS] == DEFAULT_CLUSTER_CONFIGS[ExerciseCluster.PRIMARY_PRESS]
    assert config.exercise_clusters == {'back_extension': ExerciseCluster.LOW_BACK_STABILITY}
    assert config.spine_sensitive_exercises == frozenset({'romanian_deadlift'})
    assert config.thresholds.rir_tolerance == 1.0
    assert config.thresholds.set_increase_rir_margin == 0.7


def test_empty_file_uses_defaults(tmp_path):
    assert CoachConfig.from_yaml(write(tmp_path, "")).clusters == DEFAULT_CLUSTER_CONFIGS


def test_config_env_var(tmp_path, monkeypatch):
    path = write(tmp_path, "thresholds:\n  rest_pause_limit: 3\n")
    monkeypatch.setenv('SPOTTER_CONFIG', str(path))
    assert CoachConfig.from_yaml().thresholds.rest_pause_limit == 3


def test_missing_default_file_is_empty(tmp_path, monkeypatch):
    monkeypatch.setenv('SPOTTER_CONFIG', str(tmp_path / "nope.yaml"))
    assert load_config_yaml() == {}


def test_missing_explicit_file_is_an_error(tmp_path):
    with pytest.raises(ConfigError):
        CoachConfig.from_yaml(tmp_path / "nope.yaml")


@pytest.mark.parametrize("text", [
    "clusters:\n  primary_press:\n    min_sets: 5\n",
    "clusters:\n  primary_press:\n    rep_range: [12, 8]\n",
    "clusters:\n  primary_press:\n    rep_range: [8]\n",
    "clusters:\n  primary_press:\n    primary_load_increment: -5\n",
    "clusters:\n  primary_press: heavy\n",
    "clusters:\n  powerlifting:\n    min_sets: 1\n",
    "exercise_clusters:\n  bench_press: strongman\n",
    "thresholds:\n  rir_tolerance: lots\n",
    "thresholds:\n  rebaseline_drop_ratio: 2\n",
    "thresholds: [1, 2]\n",
    "thresholds:\n  rir_tolerence: 1.0\n",
    "meso_block:\n  - weeks: [1, 3]\n    phase: early\n  - weeks: [2, 5]\n    phase: mid\n",
    "- just\n- a list\n",
    "clusters: [unclosed\n",
])
def test_invalid_config_raises_config_error(tmp_path, text):
    with pytest.raises(ConfigError):
        CoachConfig.from_yaml(write(tmp_path, text))


def test_config_error_is_a_value_error():
    with pytest.raises(ValueError):
        ProgressionConfig(rep_range=(8, 12), base_target_rir=2, primary_load_increment=5,
                          secondary_load_increment=2.5, min_sets=0, max_sets=3)


def test_missing_cluster_rejected():
    clusters = dict(DEFAULT_CLUSTER_CONFIGS)
    del clusters[ExerciseCluster.PRIMARY_LEG]
    with pytest.raises(ConfigError):
        CoachConfig(clusters=clusters)


def test_postgres_dsn(monkeypatch):
    monkeypatch.setenv('SPOTTER_POSTGRES_DSN', 'postgresql://coach@db:5432/gains')
    assert postgres_dsn() == 'postgresql://coach@db:5432/gains'
    monkeypatch.delenv('SPOTTER_POSTGRES_DSN')
    assert postgres_dsn() == DEFAULT_POSTGRES_DSN


def test_partial_thresholds_keep_engine_defaults(tmp_path):
    config = CoachConfig.from_yaml(write(tmp_path, "thresholds:\n  overperformance_reps: 3\n"))
    assert config.thresholds == replace(DecisionThresholds(), overperformance_reps=3)
