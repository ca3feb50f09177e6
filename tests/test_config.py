import logging

import pytest

from page_images.config import DEFAULT_MAX_WORKERS, FetchConfig


def test_defaults():
    config = FetchConfig()

    assert config.max_workers == DEFAULT_MAX_WORKERS
    assert config.batch_timeout is None
    assert config.archive_name == "images.zip"
    assert config.archive_folder == "images"
    assert config.images_only


def test_from_env_reads_overrides(monkeypatch):
    monkeypatch.setenv("PAGE_IMAGES_TIMEOUT", "4.5")
    monkeypatch.setenv("PAGE_IMAGES_MAX_WORKERS", "3")
    monkeypatch.setenv("PAGE_IMAGES_BATCH_TIMEOUT", "60")

    config = FetchConfig.from_env()

    assert config.timeout == 4.5
    assert config.max_workers == 3
    assert config.batch_timeout == 60.0


def test_explicit_overrides_beat_environment(monkeypatch):
    monkeypatch.setenv("PAGE_IMAGES_MAX_WORKERS", "3")

    config = FetchConfig.from_env(max_workers=5, timeout=None)

    assert config.max_workers == 5
    assert config.timeout == 15.0


def test_malformed_env_value_is_ignored(monkeypatch, caplog):
    monkeypatch.setenv("PAGE_IMAGES_MAX_WORKERS", "lots")

    with caplog.at_level(logging.WARNING, logger="page_images"):
        config = FetchConfig.from_env()

    assert config.max_workers == DEFAULT_MAX_WORKERS
    assert "PAGE_IMAGES_MAX_WORKERS" in caplog.text


@pytest.mark.parametrize("kwargs", [{"max_workers": 0}, {"timeout": 0}])
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValueError):
        FetchConfig(**kwargs)


@pytest.mark.parametrize(
    "name,raw",
    [
        ("MAX_WORKERS", "0"),
        ("MAX_WORKERS", "-2"),
        ("TIMEOUT", "0"),
        ("TIMEOUT", "nan"),
        ("BATCH_TIMEOUT", "-5"),
        ("BATCH_TIMEOUT", "inf"),
    ],
)
def test_out_of_range_env_values_keep_defaults(monkeypatch, caplog, name, raw):
    monkeypatch.setenv(f"PAGE_IMAGES_{name}", raw)

    with caplog.at_level(logging.WARNING, logger="page_images"):
        config = FetchConfig.from_env()

    assert config == FetchConfig()
    assert f"PAGE_IMAGES_{name}" in caplog.text


@pytest.mark.parametrize("batch_timeout", [0, -1.0, float("nan")])
def test_invalid_batch_timeout_rejected(batch_timeout):
    with pytest.raises(ValueError):
        FetchConfig(batch_timeout=batch_timeout)
