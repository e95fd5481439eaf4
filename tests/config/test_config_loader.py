import pytest
import yaml

from ludotheque.config.loader import ConfigError, apply_defaults, get_config_value, load_config


@pytest.mark.unit
def test_load_config_applies_defaults(make_config, tmp_path):
    config = load_config(str(make_config()))

    assert config["api"]["request_timeout"] == 30
    assert config["api"]["hash_size_limit"] == 256 * 1024 * 1024
    assert ".chd" in config["api"]["large_format_extensions"]
    assert config["scheduler"]["task_delay"] == 1.0
    assert config["scheduler"]["log_capacity"] == 100
    assert config["screenscraper"]["softname"] == "ludotheque"
    assert config["paths"]["bios"] == str(tmp_path / "roms" / "bios")


@pytest.mark.unit
def test_explicit_values_win(make_config):
    path = make_config({
        "scheduler": {"task_delay": 0.25},
        "paths": {"bios": "/srv/bios"},
    })

    config = load_config(str(path))

    assert config["scheduler"]["task_delay"] == 0.25
    assert config["scheduler"]["restart_delay"] == 2.0
    assert config["paths"]["bios"] == "/srv/bios"


@pytest.mark.unit
def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "nope.yaml"))


@pytest.mark.unit
def test_invalid_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("paths: [unclosed")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(str(path))


@pytest.mark.unit
def test_non_mapping_document(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(["a", "b"]))

    with pytest.raises(ConfigError, match="dictionary"):
        load_config(str(path))


@pytest.mark.unit
def test_null_section_is_filled():
    config = apply_defaults({"scheduler": None})

    assert config["scheduler"]["stop_grace"] == 3.0
    assert "bios" not in config["paths"]


@pytest.mark.unit
def test_get_config_value():
    config = apply_defaults({})

    assert get_config_value(config, "scraping.preferred_regions")[0] == "us"
    assert get_config_value(config, "scheduler.missing", default=7) == 7
    assert get_config_value(config, "api.request_timeout.deeper") is None
