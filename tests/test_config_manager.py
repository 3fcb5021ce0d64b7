from __future__ import annotations

import os
from pathlib import Path

import pytest

from futnews.config_manager import (
    Config,
    ConfigError,
    apply_updates,
    load_config,
    main,
    save_config,
)
from futnews.config_schema import ARTICLE_CATEGORIES, DEFAULT_CONFIG, SOURCE_TIERS, iter_field_docs


def _flatten(mapping: dict[str, object], prefix: str = "") -> set[str]:
    keys: set[str] = set()
    for name, value in mapping.items():
        path = f"{prefix}.{name}" if prefix else name
        keys.add(path)
        if isinstance(value, dict):
            keys.update(_flatten(value, path))
    return keys


def test_defaults_match_documented_pipeline_values() -> None:
    assert DEFAULT_CONFIG.collection.max_items_per_source == 20
    assert DEFAULT_CONFIG.dedup.time_window_hours == 4.0
    assert DEFAULT_CONFIG.dedup.title_similarity_threshold == 0.85
    assert DEFAULT_CONFIG.dedup.keyword_overlap_threshold == 0.7
    assert DEFAULT_CONFIG.dedup.keyword_title_floor == 0.5
    assert DEFAULT_CONFIG.ranking.tie_threshold == 5.0
    assert DEFAULT_CONFIG.ranking.candidate_pool_size == 200
    assert DEFAULT_CONFIG.retention.retention_days == 6.0
    assert DEFAULT_CONFIG.news.default_language == "en"
    assert set(DEFAULT_CONFIG.trust.tier_base_scores) == set(SOURCE_TIERS)
    assert "analysis" in ARTICLE_CATEGORIES


def test_precedence_env_overrides(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[collection]\nrequest_timeout_seconds = 15\n", encoding="utf-8")
    env_file = tmp_path / ".env"
    env_file.write_text("FUTNEWS__COLLECTION__REQUEST_TIMEOUT_SECONDS=20\n", encoding="utf-8")
    environ = {"FUTNEWS__COLLECTION__REQUEST_TIMEOUT_SECONDS": "25"}
    config = load_config(config_file, environ=environ)
    assert config.collection.request_timeout_seconds == 25
    provenance = config._metadata.provenance["collection.request_timeout_seconds"]
    assert provenance.layer == "env"
    assert provenance.env_var == "FUTNEWS__COLLECTION__REQUEST_TIMEOUT_SECONDS"


def test_env_file_beats_toml(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[dedup]\ntime_window_hours = 6\n", encoding="utf-8")
    (tmp_path / ".env").write_text("FUTNEWS__DEDUP__TIME_WINDOW_HOURS=2.5\n", encoding="utf-8")
    config = load_config(config_file, environ={})
    assert config.dedup.time_window_hours == 2.5
    assert config._metadata.provenance["dedup.time_window_hours"].layer == "env-file"


def test_toml_file_beats_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        '[news]\ndefault_language = "KO"\n\n[scheduler.category_intervals]\ntransfer = 10\n',
        encoding="utf-8",
    )
    config = load_config(config_file, environ={})
    assert config.news.default_language == "ko"
    assert config.scheduler.category_intervals == {"transfer": 10.0}
    assert config._metadata.provenance["news.default_language"].layer == "file"


def test_validation_errors_report_source(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[collection]\nrequest_timeout_seconds = 'abc'\n", encoding="utf-8")
    with pytest.raises(ConfigError) as excinfo:
        load_config(config_file, environ={})
    assert "collection.request_timeout_seconds" in str(excinfo.value)
    assert "file" in str(excinfo.value)


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[dedup]\nsimhash_bits = 64\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(config_file, environ={})


def test_keyword_floor_cannot_exceed_title_threshold(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        "[dedup]\ntitle_similarity_threshold = 0.4\nkeyword_title_floor = 0.5\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigError) as excinfo:
        load_config(config_file, environ={})
    assert "keyword_title_floor" in str(excinfo.value)


def test_unknown_category_interval_is_rejected() -> None:
    with pytest.raises(ValueError):
        Config.model_validate({"scheduler": {"category_intervals": {"gossip": 5}}})


def test_postgres_requires_connection_fields(tmp_path: Path) -> None:
    environ = {"FUTNEWS__DATABASE__DRIVER": "postgresql"}
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path / "config.toml", environ=environ)
    assert "host" in str(excinfo.value)


def test_secret_values_are_masked_in_errors(tmp_path: Path) -> None:
    environ = {"FUTNEWS__DATABASE__PASSWORD": "[1, 2]"}
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path / "config.toml", environ=environ)
    assert "database.password" in str(excinfo.value)
    assert "received" not in str(excinfo.value)


def test_apply_updates_validates_and_tracks_provenance(tmp_path: Path) -> None:
    config = load_config(tmp_path / "config.toml", environ={})
    updated = apply_updates(config, {"ranking.max_limit": "80", "logging.level": "debug"})
    assert updated.ranking.max_limit == 80
    assert updated.logging.level == "DEBUG"
    assert updated._metadata.provenance["ranking.max_limit"].layer == "cli"

    with pytest.raises(ConfigError):
        apply_updates(config, {"ranking.unknown_field": "1"})
    with pytest.raises(ConfigError):
        apply_updates(config, {"ranking.default_limit": "500"})


def test_save_config_round_trips(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config = load_config(config_file, environ={})
    updated = apply_updates(config, {"retention.retention_days": "3"})
    saved_path = save_config(updated, config_file)
    assert saved_path == config_file

    reloaded = load_config(config_file, environ={})
    assert reloaded.retention.retention_days == 3.0
    content = config_file.read_text(encoding="utf-8")
    assert "password" not in content


def test_schema_keys_cover_defaults() -> None:
    schema_keys = {
        entry["name"] for entry in iter_field_docs(DEFAULT_CONFIG) if not entry.get("is_nested")
    }
    default_keys = _flatten(DEFAULT_CONFIG.model_dump(mode="python"))
    assert schema_keys.issubset(default_keys)


@pytest.mark.parametrize(
    "path",
    [
        "collection.request_timeout_seconds",
        "collection.max_concurrent_requests",
        "dedup.keyword_overlap_threshold",
        "trust.tier_base_scores",
        "relevance.recency_steps",
        "ranking.tie_threshold",
        "retention.retention_days",
        "scheduler.collection_interval_minutes",
        "news.default_language",
        "logging.level",
    ],
)
def test_implicit_keys_are_defined(path: str) -> None:
    schema_keys = {
        entry["name"] for entry in iter_field_docs(DEFAULT_CONFIG) if not entry.get("is_nested")
    }
    assert path in schema_keys


def test_command_line_actions(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    for key in list(os.environ):
        if key.startswith("FUTNEWS__"):
            monkeypatch.delenv(key)
    config_file = tmp_path / "config.toml"
    config_file.write_text("[dedup]\ntime_window_hours = 3.0\n", encoding="utf-8")

    assert main(["--config", str(config_file), "--validate"]) == 0
    assert "Configuration OK" in capsys.readouterr().out

    assert main(["--config", str(config_file), "--explain", "dedup.time_window_hours"]) == 0
    explained = capsys.readouterr().out
    assert "dedup.time_window_hours = 3.0" in explained
    assert "source:" in explained

    assert main(["--config", str(config_file), "--show-sources"]) == 0
    assert "Active configuration sources:" in capsys.readouterr().out

    assert main(["--dump-defaults"]) == 0
    defaults = capsys.readouterr().out
    assert "[dedup]" in defaults
    assert "time_window_hours = 4.0" in defaults

    assert main(["--print-schema"]) == 0
    assert "dedup.time_window_hours" in capsys.readouterr().out

    assert main(["--config", str(config_file), "--set", "dedup.time_window_hours"]) == 1
    assert "Invalid --set argument" in capsys.readouterr().err
