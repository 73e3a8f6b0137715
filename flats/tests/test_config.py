from pathlib import Path

import pytest

from flats.config import SiteConfig, is_production, load_config

SITE_YAML = Path(__file__).resolve().parents[2] / "config" / "site.yml"


def test_repo_site_config_loads():
    config = load_config(SITE_YAML)

    assert config.index_url == "https://flatsatpcm.com/floorplans/"
    assert config.card_selector == ".jd-fp-floorplan-card"
    assert [(s.wait_until, s.timeout_ms) for s in config.strategies] == [
        ("domcontentloaded", 30000),
        ("load", 45000),
        ("networkidle", 60000),
    ]
    assert config.max_attempts == 3
    assert config.browser.timezone_id == "America/New_York"
    assert "--no-sandbox" in config.browser.args


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "site.yml"
    path.write_text("max_attempts: 5\nbrowser:\n  headless: false\n", encoding="utf-8")
    monkeypatch.setenv("FLATS_CONFIG", str(path))

    config = load_config()

    assert config.max_attempts == 5
    assert config.browser.headless is False
    assert config.index_url == SiteConfig().index_url


def test_missing_default_config_falls_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("FLATS_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)

    assert load_config() == SiteConfig()


def test_missing_explicit_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yml")


def test_empty_config_file_uses_defaults(tmp_path):
    path = tmp_path / "site.yml"
    path.write_text("", encoding="utf-8")

    assert load_config(path) == SiteConfig()


@pytest.mark.parametrize(
    "env,expected",
    [("production", True), ("PROD", True), ("development", False), ("", False)],
)
def test_is_production_reads_app_env(monkeypatch, env, expected):
    monkeypatch.setenv("APP_ENV", env)
    assert is_production() is expected
