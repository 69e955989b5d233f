import os

import pytest

from photowidget.infrastructure.config import settings
from photowidget.infrastructure.config.settings import (
    DEFAULTS, get_backoff_policy, get_config, get_work_dir, load_configuration, set_config,
    set_config_for_testing,
)


@pytest.fixture
def fresh_settings(monkeypatch):
    """Unloaded settings with no test overrides for the keys under test."""
    monkeypatch.setattr(settings, "_loaded", False)
    monkeypatch.setattr(settings, "_config", {})
    for key in ("PHOTOWIDGET_RETRY_MAX_ATTEMPTS", "RETRY_MAX_ATTEMPTS", "PHOTOWIDGET_PICSUM_BASE_URL", "PICSUM_BASE_URL"):
        monkeypatch.delenv(key, raising=False)


def test_defaults_are_used_when_nothing_is_set():
    assert get_config('retry.max_attempts') == 10
    assert get_config('source.name') == "Picsum Photos"
    assert get_config('source.url') == "https://picsum.photos/"


def test_unknown_key_returns_default_argument():
    assert get_config('no.such.key', "fallback") == "fallback"
    assert get_config('no.such.key') is None


def test_test_config_wins_over_everything(monkeypatch):
    monkeypatch.setenv("PHOTOWIDGET_RETRY_MAX_ATTEMPTS", "4")
    set_config('retry.max_attempts', 5)
    set_config_for_testing({'retry.max_attempts': 6})

    assert get_config('retry.max_attempts') == 6


def test_override_wins_over_environment(monkeypatch):
    monkeypatch.setenv("PHOTOWIDGET_RETRY_MAX_ATTEMPTS", "4")
    set_config('retry.max_attempts', 5)

    assert get_config('retry.max_attempts') == 5


@pytest.mark.parametrize("raw, expected", [
    ("3", 3),
    ("2.5", 2.5),
    ("true", True),
    ("False", False),
    ("https://example.org", "https://example.org"),
])
def test_environment_values_are_coerced(monkeypatch, raw, expected):
    monkeypatch.setenv("PHOTOWIDGET_PICSUM_BASE_URL", raw)
    assert get_config('picsum.base_url') == expected


def test_unprefixed_environment_variable(monkeypatch):
    monkeypatch.setenv("RETRY_BACKOFF_FACTOR", "3.0")
    assert get_config('retry.backoff_factor') == 3.0


def test_yaml_file_is_flattened(fresh_settings, tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "retry:\n  max_attempts: 7\npicsum:\n  base_url: https://mirror.example/\n",
        encoding='utf-8',
    )

    load_configuration(config_file=config_file, env_file=tmp_path / "missing.env")

    assert get_config('retry.max_attempts') == 7
    assert settings.get_base_url() == "https://mirror.example"


def test_environment_wins_over_yaml(fresh_settings, tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("retry:\n  max_attempts: 7\n", encoding='utf-8')
    monkeypatch.setenv("PHOTOWIDGET_RETRY_MAX_ATTEMPTS", "2")

    load_configuration(config_file=config_file, env_file=tmp_path / "missing.env")

    assert get_config('retry.max_attempts') == 2


def test_dotenv_file_is_loaded(fresh_settings, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("PHOTOWIDGET_RETRY_MAX_ATTEMPTS=12\n", encoding='utf-8')

    try:
        load_configuration(config_file=tmp_path / "missing.yaml", env_file=env_file)
        assert get_config('retry.max_attempts') == 12
    finally:
        os.environ.pop("PHOTOWIDGET_RETRY_MAX_ATTEMPTS", None)


def test_broken_yaml_falls_back_to_defaults(fresh_settings, tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("retry: [unclosed\n", encoding='utf-8')

    load_configuration(config_file=config_file, env_file=tmp_path / "missing.env")

    assert get_config('retry.max_attempts') == DEFAULTS['retry.max_attempts']


def test_flatten_nested_mappings():
    assert settings._flatten({'a': {'b': 1, 'c': {'d': 2}}, 'e': 3}) == {'a.b': 1, 'a.c.d': 2, 'e': 3}


def test_backoff_policy_from_config():
    set_config_for_testing({
        'retry.max_attempts': 4,
        'retry.initial_backoff_seconds': 1.5,
        'retry.backoff_factor': 3,
        'retry.max_backoff_seconds': 60,
    })

    assert get_backoff_policy() == {
        'max_attempts': 4,
        'initial_delay': 1.5,
        'factor': 3.0,
        'max_delay': 60.0,
    }


def test_empty_work_dir_disables_persistence(tmp_path):
    assert get_work_dir() == tmp_path / "work_queue"

    set_config_for_testing({'work.dir': ""})

    assert get_work_dir() is None
