import pytest

from ludotheque.config.validator import ValidationError, validate_config


@pytest.mark.unit
def test_valid_config_passes(base_config):
    validate_config(base_config)


@pytest.mark.unit
def test_required_paths(base_config):
    base_config["paths"] = {}

    with pytest.raises(ValidationError) as exc:
        validate_config(base_config)

    message = str(exc.value)
    assert "paths.roms is required" in message
    assert "paths.media is required" in message
    assert "paths.database is required" in message


@pytest.mark.unit
def test_roms_must_be_directory(base_config, tmp_path):
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x")
    base_config["paths"]["roms"] = str(not_a_dir)

    with pytest.raises(ValidationError, match="must be a directory"):
        validate_config(base_config)


@pytest.mark.unit
def test_missing_platforms_file(base_config, tmp_path):
    base_config["paths"]["platforms"] = str(tmp_path / "platforms.yaml")

    with pytest.raises(ValidationError, match="paths.platforms file not found"):
        validate_config(base_config)


@pytest.mark.unit
def test_credentials_are_optional(base_config):
    base_config["screenscraper"] = {}

    validate_config(base_config)


@pytest.mark.unit
def test_half_developer_pair(base_config):
    base_config["screenscraper"]["devpassword"] = ""

    with pytest.raises(ValidationError, match="must be set together"):
        validate_config(base_config)


@pytest.mark.unit
@pytest.mark.parametrize(
    "section, key, value, fragment",
    [
        ("api", "request_timeout", 0, "api.request_timeout"),
        ("api", "max_retries", 11, "api.max_retries"),
        ("api", "large_format_extensions", ".iso", "api.large_format_extensions"),
        ("scheduler", "task_delay", -1, "scheduler.task_delay"),
        ("scheduler", "log_capacity", 0, "scheduler.log_capacity"),
        ("scraping", "preferred_regions", "us", "scraping.preferred_regions"),
        ("logging", "level", "TRACE", "logging.level"),
    ],
)
def test_invalid_values(base_config, section, key, value, fragment):
    base_config[section][key] = value

    with pytest.raises(ValidationError, match=fragment):
        validate_config(base_config)
