"""Unit tests for configuration loading"""

import pytest

from flint.core.config import build_config, env_settings, load_config, load_yaml_settings
from flint.core.models import FlintConfig

YAML_CONFIG = """
logging:
  level: INFO
flint:
  local_window: 800
  min_relevance_score: 0.2
  enable_deduplication: false
"""


@pytest.fixture
def yaml_file(tmp_path):
    path = tmp_path / "flint.yaml"
    path.write_text(YAML_CONFIG, encoding="utf-8")
    return path


def test_defaults():
    config = load_config(environ={})
    assert config == FlintConfig()
    assert config.max_memories == 1000
    assert config.generation_timeout == 30.0


def test_yaml_section(yaml_file):
    config = load_config(yaml_file, environ={})
    assert config.local_window == 800
    assert config.min_relevance_score == 0.2
    assert config.enable_deduplication is False
    assert config.max_related_sections == 3


def test_environment_overrides_yaml(yaml_file):
    environ = {"FLINT_LOCAL_WINDOW": "600", "FLINT_ENABLE_DEDUPLICATION": "yes", "OTHER": "1"}
    config = load_config(yaml_file, environ=environ)
    assert config.local_window == 600
    assert config.enable_deduplication is True


def test_env_settings_ignores_unknown_fields():
    assert env_settings({"FLINT_NOT_A_FIELD": "1", "FLINT_MAX_MEMORIES": "5"}) == {"max_memories": "5"}


def test_env_file_does_not_override_real_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("FLINT_MAX_MEMORIES=50\nFLINT_RETRAIN_INTERVAL=4\n", encoding="utf-8")
    monkeypatch.setenv("FLINT_MAX_MEMORIES", "70")
    monkeypatch.setenv("FLINT_RETRAIN_INTERVAL", "placeholder")
    monkeypatch.delenv("FLINT_RETRAIN_INTERVAL")

    config = load_config(env_file=env_file)

    assert config.max_memories == 70
    assert config.retrain_interval == 4


def test_missing_yaml_file_uses_defaults(tmp_path):
    assert load_yaml_settings(tmp_path / "absent.yaml") == {}


def test_non_mapping_section_is_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("flint:\n  - one\n  - two\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_yaml_settings(path)


def test_invalid_boolean_is_rejected():
    with pytest.raises(ValueError):
        build_config({"enable_relevance_scoring": "maybe"})


def test_unknown_keys_are_ignored():
    assert build_config({"no_such_option": 1}) == FlintConfig()


def test_engine_options_subset():
    options = FlintConfig(local_window=900, max_related_sections=5).engine_options()
    assert (options.local_window, options.max_related_sections) == (900, 5)
