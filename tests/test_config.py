"""Tests for the configuration module."""

import json

import pytest

from unitrunner.config import (
    RunnerConfig,
    StopOnConfig,
    StrictnessConfig,
    TestSelectionConfig,
    create_example_config,
    find_config_file,
    get_default_config,
)


class TestSelectionDefaults:
    """Tests for TestSelectionConfig."""

    def test_default_values(self):
        """Test default values are set correctly."""
        config = TestSelectionConfig()
        assert config.filter == ""
        assert config.groups == []
        assert config.exclude_groups == []

    def test_blank_groups_dropped(self):
        """Test that group names are stripped and blanks dropped."""
        config = TestSelectionConfig(groups=[" db ", ""], exclude_groups=["  "])
        assert config.groups == ["db"]
        assert config.exclude_groups == []


class TestPolicyDefaults:
    """Tests for StrictnessConfig and StopOnConfig."""

    def test_everything_off(self):
        """Test that strictness and stop flags default to off."""
        strict = StrictnessConfig()
        stop_on = StopOnConfig()

        assert not any(strict.model_dump().values())
        assert not any(stop_on.model_dump().values())


class TestRunnerConfigModel:
    """Tests for RunnerConfig."""

    def test_default_config(self):
        """Test creating a default configuration."""
        config = get_default_config()
        assert config.target == "tests"
        assert config.repeat == 1
        assert config.convert_errors_to_exceptions is True
        assert config.backup_globals is False

    def test_repeat_validation(self):
        """Test that repeat must be at least 1."""
        with pytest.raises(ValueError, match="Repeat must be at least 1"):
            RunnerConfig(repeat=0)

    def test_target_validation(self):
        """Test that the target cannot be blank."""
        with pytest.raises(ValueError):
            RunnerConfig(target="   ")

    def test_from_file(self, tmp_path):
        """Test loading configuration from a file."""
        path = tmp_path / "unitrunner.json"
        path.write_text(
            json.dumps(
                {
                    "target": "checks",
                    "repeat": 3,
                    "selection": {"groups": ["db"]},
                    "stop_on": {"failure": True},
                }
            )
        )

        config = RunnerConfig.from_file(path)

        assert config.target == "checks"
        assert config.repeat == 3
        assert config.selection.groups == ["db"]
        assert config.stop_on.failure is True
        assert config.stop_on.error is False

    def test_from_missing_file(self, tmp_path):
        """Test that loading a missing file fails."""
        with pytest.raises(FileNotFoundError):
            RunnerConfig.from_file(tmp_path / "missing.json")

    def test_to_file_round_trip(self, tmp_path):
        """Test saving and loading configuration."""
        config = RunnerConfig(target="suite", backup_globals=True)
        path = tmp_path / "nested" / "unitrunner.json"

        config.to_file(path)

        assert RunnerConfig.from_file(path) == config

    def test_find_and_load_searches_parents(self, tmp_path):
        """Test that the config file is found in a parent directory."""
        RunnerConfig(target="found").to_file(tmp_path / ".unitrunner.json")
        child = tmp_path / "a" / "b"
        child.mkdir(parents=True)

        assert find_config_file(child) == tmp_path.resolve() / ".unitrunner.json"
        assert RunnerConfig.find_and_load(child).target == "found"

    def test_find_and_load_without_file(self, tmp_path, monkeypatch):
        """Test the error when no config file exists."""
        monkeypatch.setattr("unitrunner.config.find_config_file", lambda start_dir=None: None)
        with pytest.raises(FileNotFoundError, match="unitrunner init"):
            RunnerConfig.find_and_load(tmp_path)

    def test_get_target_path(self, tmp_path):
        """Test resolving the target against a base directory."""
        (tmp_path / "tests").mkdir()

        assert RunnerConfig(target="tests::SomeTest").get_target_path(tmp_path) == (tmp_path / "tests").resolve()
        assert RunnerConfig(target="package.module").get_target_path(tmp_path) is None


class TestCreateExampleConfig:
    """Tests for create_example_config."""

    def test_creates_file(self, tmp_path):
        """Test that the example config is written and valid."""
        path = create_example_config(tmp_path / "unitrunner.json")

        config = RunnerConfig.from_file(path)
        assert config.strict.tests_that_do_not_test_anything is True
        assert config.target == "tests"
