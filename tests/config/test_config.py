"""
Unit tests for the ConfigAccessor class in ottlcli.config module.
"""

import pytest

from ottlcli.config import (
    ConfigAccessor,
    get_config_file,
    get_default_context,
    get_output_indent,
)


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary config file for testing."""
    path = tmp_path / "ottlcli.cfg"
    path.write_text(
        """
[transform]
context = Metric

[output]
indent = 2
"""
    )
    return path


@pytest.fixture
def empty_config_file(tmp_path):
    path = tmp_path / "empty.cfg"
    path.write_text("")
    return path


@pytest.mark.short
def test_config_accessor_get_existing(temp_config_file):
    config = ConfigAccessor(temp_config_file)

    assert config.get("transform", "context") == "Metric"
    assert config.get("output", "indent") == "2"


@pytest.mark.short
def test_config_accessor_get_missing(temp_config_file):
    config = ConfigAccessor(temp_config_file)

    assert config.get("transform", "missing_key", default="default") == "default"
    assert config.get("missing_section", "key") is None


@pytest.mark.short
def test_default_config_file_location(tmp_path, monkeypatch):
    monkeypatch.setattr("ottlcli.config.config_dir", tmp_path / "cfg")
    assert get_config_file() == tmp_path / "cfg" / "ottlcli.cfg"

    config = ConfigAccessor()
    assert config.config_path == tmp_path / "cfg" / "ottlcli.cfg"
    assert get_output_indent(config) is None
    assert not (tmp_path / "cfg").exists()


@pytest.mark.short
def test_configured_defaults(temp_config_file):
    config = ConfigAccessor(temp_config_file)
    assert get_default_context(config) == "Metric"
    assert get_output_indent(config) == 2


@pytest.mark.short
def test_defaults_when_missing(empty_config_file):
    config = ConfigAccessor(empty_config_file)
    assert get_default_context(config) == ""
    assert get_output_indent(config) is None


@pytest.mark.short
@pytest.mark.parametrize("value", ["wide", "-1", "1.5"])
def test_invalid_indent(tmp_path, value):
    path = tmp_path / "bad.cfg"
    path.write_text(f"[output]\nindent = {value}\n")
    with pytest.raises(ValueError, match="invalid \\[output\\] indent"):
        get_output_indent(ConfigAccessor(path))
