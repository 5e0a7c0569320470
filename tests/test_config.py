"""
Tests for configuration loading
"""

import pytest

from mdbook_nadi.config import NadiBookConfig, apply_mapping, find_config_file, load_config
from mdbook_nadi.exceptions import ConfigError

ENV_VARS = ("MDBOOK_NADI_COMMAND", "MDBOOK_NADI_TIMEOUT", "MDBOOK_NADI_SHOW_SOURCE", "MDBOOK_NADI_LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """Tests for default configuration."""

    def test_defaults(self):
        """Test default values."""
        config = load_config()
        assert config.nadi_command == "nadi"
        assert config.nadi_args == []
        assert config.timeout is None
        assert config.show_source is True
        assert config.hide_silent_lines is False
        assert config.result_label == "Results:"
        assert config.error_label == "*Error*:"
        assert config.working_dir == "src"

    def test_to_dict(self):
        """Test every field is exported."""
        assert set(NadiBookConfig().to_dict()) == {
            "nadi_command", "nadi_args", "timeout", "show_source", "hide_silent_lines",
            "result_label", "error_label", "working_dir", "log_level",
        }


class TestSources:
    """Tests for the configuration sources and their precedence."""

    def test_yaml_file(self, temp_dir):
        """Test settings from nadi-book.yaml."""
        (temp_dir / "nadi-book.yaml").write_text("show-source: false\ntimeout: 5\n")
        config = load_config(temp_dir)
        assert config.show_source is False
        assert config.timeout == 5.0

    def test_hidden_yaml_file(self, temp_dir):
        """Test the dotted file name is found too."""
        (temp_dir / ".nadi-book.yaml").write_text("working_dir: root\n")
        assert find_config_file(temp_dir) == temp_dir / ".nadi-book.yaml"
        assert load_config(temp_dir).working_dir == "root"

    def test_nested_yaml(self, temp_dir):
        """Test settings under a top-level nadi key."""
        (temp_dir / "nadi-book.yaml").write_text("nadi:\n  nadi_args: [--quiet]\n")
        assert load_config(temp_dir).nadi_args == ["--quiet"]

    def test_explicit_path(self, temp_dir):
        """Test an explicit file skips the search."""
        path = temp_dir / "custom.yaml"
        path.write_text("result_label: 'Output:'\n")
        assert load_config(config_path=path).result_label == "Output:"

    def test_book_toml_table(self):
        """Test the preprocessor table from book.toml."""
        table = {"command": "mdbook-nadi", "nadi-command": "nadi2", "nadi-args": "-x -y", "renderers": ["html"]}
        config = load_config(preprocessor_table=table)
        assert config.nadi_command == "nadi2"
        assert config.nadi_args == ["-x", "-y"]

    def test_table_overrides_file(self, temp_dir):
        """Test book.toml wins over the YAML file."""
        (temp_dir / "nadi-book.yaml").write_text("error_label: from-file\n")
        config = load_config(temp_dir, {"error-label": "from-table"})
        assert config.error_label == "from-table"

    def test_env_overrides_all(self, temp_dir, monkeypatch):
        """Test environment variables win over every other source."""
        (temp_dir / "nadi-book.yaml").write_text("timeout: 5\n")
        monkeypatch.setenv("MDBOOK_NADI_TIMEOUT", "9")
        monkeypatch.setenv("MDBOOK_NADI_COMMAND", "/opt/nadi/bin/nadi")
        monkeypatch.setenv("MDBOOK_NADI_SHOW_SOURCE", "no")
        config = load_config(temp_dir, {"nadi-command": "nadi2"})
        assert config.timeout == 9.0
        assert config.nadi_command == "/opt/nadi/bin/nadi"
        assert config.show_source is False

    def test_unknown_keys_ignored(self):
        """Test unknown settings do not fail."""
        config = apply_mapping(NadiBookConfig(), {"colour": "blue"}, "test")
        assert not hasattr(config, "colour")


class TestValidation:
    """Tests for invalid configuration values."""

    @pytest.mark.parametrize("table", [
        {"working-dir": "elsewhere"},
        {"timeout": -1},
        {"timeout": "soon"},
        {"show-source": "maybe"},
        {"nadi-args": 3},
        {"nadi-command": " "},
        {"log-level": "LOUD"},
    ])
    def test_invalid_values(self, table):
        """Test invalid values raise ConfigError."""
        with pytest.raises(ConfigError):
            load_config(preprocessor_table=table)

    def test_invalid_yaml(self, temp_dir):
        """Test malformed YAML raises ConfigError."""
        (temp_dir / "nadi-book.yaml").write_text("key: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(temp_dir)

    def test_non_mapping_yaml(self, temp_dir):
        """Test a YAML list is refused."""
        (temp_dir / "nadi-book.yaml").write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(temp_dir)
