import json

import pytest

from marker_clustering import config
from marker_clustering.cluster_marker import ClusterMarker
from marker_clustering.config import ClusteringSettings, load_settings


def test_defaults():
    settings = ClusteringSettings()
    assert settings.enabled
    assert settings.strategy == "grid"
    assert settings.base_zoom == 23.5
    assert settings.size_divisor == 100000.0
    assert settings.cluster_hue == 180.0
    assert settings.cluster_factory is ClusterMarker
    assert settings.max_clustering_zoom == 23.5


def test_load_json(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"base_zoom": 18, "size_divisor": 5000.0}))
    settings = load_settings(str(path))
    assert settings.base_zoom == 18
    assert settings.size_divisor == 5000.0
    assert settings.strategy == "grid"


def test_load_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("strategy: none\ncluster_hue: 120\n")
    settings = load_settings(str(path))
    assert settings.strategy == "none"
    assert settings.cluster_hue == 120


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "nope.json"))


def test_non_mapping(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_settings(str(path))


def test_unknown_key(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"cluster_factory": "x"}))
    with pytest.raises(ValueError):
        load_settings(str(path))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"size_divisor": 0.0},
        {"size_divisor": -1.0},
        {"base_zoom": float("inf")},
        {"cluster_hue": 360.0},
        {"strategy": "kmeans"},
    ],
)
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        ClusteringSettings(**kwargs)


def test_default_settings_path(monkeypatch, tmp_path):
    monkeypatch.delenv(config.CONFIG_ENV_VAR, raising=False)
    assert config.default_settings_path() is None
    monkeypatch.setenv(config.CONFIG_ENV_VAR, str(tmp_path / "s.yaml"))
    assert config.default_settings_path() == str(tmp_path / "s.yaml")
