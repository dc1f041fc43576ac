"""Tests for YAML configuration loading."""

from pathlib import Path

import pytest
import yaml

from tests.fakes import ScriptedFormat
from waypost.core.config import WaypostConfig, load_config
from waypost.core.registry import FormatRegistry


def test_defaults_without_file(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cfg = load_config()
    assert cfg.source is None
    assert cfg.preferred_formats == []
    assert cfg.default_output_format == "gpx"
    assert cfg.duplicate_first_position is False
    assert cfg.ignore_maximum_position_count is False
    assert cfg.trace_file is None


def test_picks_up_file_in_working_directory(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path("waypost_config.yml").write_text("default_output_format: kml\n", encoding="utf-8")
    cfg = load_config()
    assert cfg.default_output_format == "kml"
    assert cfg.source == Path("waypost_config.yml")


def test_loads_all_keys(tmp_path: Path):
    path = tmp_path / "cfg.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "preferred_formats": "itn",
                "default_output_format": "csv",
                "duplicate_first_position": True,
                "ignore_maximum_position_count": True,
                "trace_file": "trace.jsonl",
            }
        ),
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.preferred_formats == ["itn"]
    assert cfg.default_output_format == "csv"
    assert cfg.duplicate_first_position is True
    assert cfg.ignore_maximum_position_count is True
    assert cfg.trace_file == Path("trace.jsonl")
    assert cfg.get_config_summary()["source"] == str(path)


def test_empty_file_means_defaults(tmp_path: Path):
    path = tmp_path / "cfg.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path).default_output_format == "gpx"


def test_invalid_yaml_raises(tmp_path: Path):
    path = tmp_path / "cfg.yaml"
    path.write_text(":\n- [\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid YAML"):
        load_config(path)


def test_non_mapping_raises(tmp_path: Path):
    path = tmp_path / "cfg.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_config(path)


def test_unknown_keys_warn(tmp_path: Path, caplog):
    path = tmp_path / "cfg.yaml"
    path.write_text("colour: blue\n", encoding="utf-8")
    with caplog.at_level("WARNING", logger="waypost.core.config"):
        load_config(path)
    assert "colour" in caplog.text


def test_validate_against_registry(tmp_path: Path):
    registry = FormatRegistry([ScriptedFormat("GPX")])
    cfg = WaypostConfig()
    cfg.validate(registry)

    cfg.preferred_formats = ["nope"]
    with pytest.raises(ValueError, match="nope"):
        cfg.validate(registry)


def test_export_template_is_loadable(tmp_path: Path):
    path = tmp_path / "waypost_config.yaml"
    WaypostConfig().export_template(path)
    cfg = load_config(path)
    assert cfg.default_output_format == "gpx"
    assert cfg.preferred_formats == []
