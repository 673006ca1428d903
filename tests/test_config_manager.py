"""Tests for TOML configuration handling."""

from codelayers import config_manager
from codelayers.config import DEFAULT_RISK_WEIGHTS


def test_defaults_without_file(temp_home):
    assert config_manager.load_full_config() == {}

    analysis = config_manager.load_analysis_config()
    assert analysis["risk_weights"] == DEFAULT_RISK_WEIGHTS
    assert analysis["cluster_affinity"] == 0.5
    assert analysis["top_n"] == 10


def test_config_file_follows_home(temp_home):
    assert config_manager.config_file() == temp_home / "config.toml"


def test_save_and_load(temp_home):
    assert config_manager.save_analysis_config(risk_weights={"churn": 1.0}, top_n=3)

    analysis = config_manager.load_analysis_config()
    assert analysis["top_n"] == 3
    assert analysis["risk_weights"] == {"centrality": 0.5, "complexity": 0.25, "churn": 1.0}
    assert analysis["max_cycles"] == 1000


def test_other_sections_are_preserved(temp_home):
    temp_home.mkdir(parents=True, exist_ok=True)
    (temp_home / "config.toml").write_text('[display]\ntheme = "dark"\n', encoding="utf-8")

    config_manager.save_analysis_config(cluster_affinity=0.8)

    full = config_manager.load_full_config()
    assert full["display"] == {"theme": "dark"}
    assert full["analysis"] == {"cluster_affinity": 0.8}


def test_unreadable_file_is_ignored(temp_home):
    temp_home.mkdir(parents=True, exist_ok=True)
    (temp_home / "config.toml").write_text("this is = = not toml", encoding="utf-8")

    assert config_manager.load_full_config() == {}
    assert config_manager.load_analysis_config()["top_n"] == 10
