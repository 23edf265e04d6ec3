"""Tests for the typer CLI."""

import pytest
from typer.testing import CliRunner

from adaptive_feed.cache import CacheService, JsonFileStorage
from adaptive_feed.cli import app

runner = CliRunner()


@pytest.fixture
def cache_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("ADAPTIVE_FEED_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("ADAPTIVE_FEED_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("ADAPTIVE_FEED_CONFIG_PATH", raising=False)
    monkeypatch.delenv("ADAPTIVE_FEED_BRAND", raising=False)
    return tmp_path / "cache"


def seed(cache_dir, brand, name, value):
    CacheService(JsonFileStorage(cache_dir), brand=brand).set(name, value)


class TestCacheCommands:
    def test_stats_on_empty_cache(self, cache_dir):
        result = runner.invoke(app, ["cache", "stats"])

        assert result.exit_code == 0
        assert "Entries" in result.output

    def test_stats_counts_entries(self, cache_dir):
        seed(cache_dir, "NT", "magazine_editions", ["2024-01"])
        seed(cache_dir, "DL", "magazine_editions", ["2024-02"])

        result = runner.invoke(app, ["cache", "stats"])

        assert result.exit_code == 0
        assert "2" in result.output

    def test_clear_one_brand(self, cache_dir):
        seed(cache_dir, "NT", "magazine_editions", ["2024-01"])
        seed(cache_dir, "DL", "magazine_editions", ["2024-02"])

        result = runner.invoke(app, ["cache", "clear", "--brand", "dl"])

        assert result.exit_code == 0
        assert "Removed 1 cache entries" in result.output
        assert CacheService(JsonFileStorage(cache_dir), brand="NT").get("magazine_editions") == ["2024-01"]
        assert CacheService(JsonFileStorage(cache_dir), brand="DL").get("magazine_editions") is None

    def test_clear_everything(self, cache_dir):
        seed(cache_dir, "NT", "magazine_editions", ["2024-01"])
        seed(cache_dir, "DL", "magazine_editions", ["2024-02"])

        result = runner.invoke(app, ["cache", "clear"])

        assert result.exit_code == 0
        assert "Removed 2 cache entries" in result.output

    def test_invalid_config_exits_nonzero(self, cache_dir, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- not a mapping\n", encoding="utf-8")

        result = runner.invoke(app, ["cache", "stats", "--config", str(path)])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestSimulate:
    def test_simulate_runs(self, cache_dir):
        result = runner.invoke(app, ["simulate", "--primary", "20", "--scroll-to", "22"])

        assert result.exit_code == 0, result.output
        assert "Summary" in result.output
        assert "recommendation_calls" in result.output

    def test_simulate_with_failing_ad(self, cache_dir):
        result = runner.invoke(app, ["simulate", "--scroll-to", "10", "--fail-ad", "4"])

        assert result.exit_code == 0, result.output
        assert "ads_failed: [4]" in result.output

    def test_simulate_rejects_bad_window(self, cache_dir):
        result = runner.invoke(app, ["simulate", "--preload", "3", "--unload", "3"])

        assert result.exit_code == 1
        assert "Invalid ad window" in result.output

    @pytest.mark.parametrize("args", [["--items-per-load", "0"], ["--threshold", "-1"]])
    def test_simulate_rejects_bad_scroll_settings(self, cache_dir, args):
        result = runner.invoke(app, ["simulate", *args])

        assert result.exit_code == 1
        assert "Invalid scroll settings" in result.output
