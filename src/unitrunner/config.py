"""Configuration management for UnitRunner."""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

CONFIG_NAMES = ["unitrunner.json", ".unitrunner.json"]


class TestSelectionConfig(BaseModel):
    """Which tests of the target are run."""

    __test__ = False

    filter: str = Field(default="", description="Regex or substring matched against test names")
    groups: list[str] = Field(default_factory=list, description="Only run tests in these groups")
    exclude_groups: list[str] = Field(default_factory=list, description="Skip tests in these groups")

    @field_validator("groups", "exclude_groups")
    @classmethod
    def validate_groups(cls, v: list[str]) -> list[str]:
        return [g.strip() for g in v if g.strip()]


class StrictnessConfig(BaseModel):
    """Policies that turn otherwise passing tests into risky ones."""

    tests_that_do_not_test_anything: bool = Field(
        default=False, description="Mark tests without assertions as risky"
    )
    output_during_tests: bool = Field(default=False, description="Mark tests that print output as risky")
    todo_annotated_tests: bool = Field(default=False, description="Mark @todo tests as risky")
    disallow_changes_to_global_state: bool = Field(
        default=False, description="Mark tests that modify module globals as risky"
    )


class StopOnConfig(BaseModel):
    """Outcomes that stop the run at the next test boundary."""

    error: bool = False
    failure: bool = False
    incomplete: bool = False
    risky: bool = False
    skipped: bool = False


class RunnerConfig(BaseModel):
    """Main configuration for UnitRunner."""

    target: str = Field(default="tests", description="Directory, file, module or Class selector to run")
    repeat: int = Field(default=1, description="Run the selected tests this many times")
    convert_errors_to_exceptions: bool = Field(
        default=True, description="Escalate warnings raised during a test into errors"
    )
    backup_globals: bool = Field(default=False, description="Restore module globals after every test")
    backup_static_attributes: bool = Field(
        default=False, description="Restore class attributes after every test"
    )
    selection: TestSelectionConfig = Field(default_factory=TestSelectionConfig)
    strict: StrictnessConfig = Field(default_factory=StrictnessConfig)
    stop_on: StopOnConfig = Field(default_factory=StopOnConfig)

    @field_validator("repeat")
    @classmethod
    def validate_repeat(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Repeat must be at least 1")
        return v

    @field_validator("target")
    @classmethod
    def validate_target(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Test target cannot be empty")
        return v

    @classmethod
    def from_file(cls, path: Path | str) -> "RunnerConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        return cls.model_validate(data)

    @classmethod
    def find_and_load(cls, start_dir: Path | str | None = None) -> "RunnerConfig":
        """Find and load configuration file, searching up the directory tree."""
        path = find_config_file(start_dir)
        if path is None:
            raise FileNotFoundError(
                "No configuration file found. Create unitrunner.json or run 'unitrunner init'"
            )
        return cls.from_file(path)

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

    def get_target_path(self, base_dir: Path | str | None = None) -> Optional[Path]:
        """Get the target as an absolute path, or None for a module selector."""
        base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        target = self.target.split("::", 1)[0]
        path = base_dir / target
        if path.exists():
            return path.resolve()
        return None


def find_config_file(start_dir: Path | str | None = None) -> Optional[Path]:
    """Search for a configuration file from a directory up to the root."""
    current = Path(start_dir).resolve() if start_dir is not None else Path.cwd().resolve()

    for directory in [current, *current.parents]:
        for name in CONFIG_NAMES:
            config_path = directory / name
            if config_path.exists():
                return config_path
    return None


def get_default_config() -> RunnerConfig:
    """Return a default configuration."""
    return RunnerConfig(target="tests")


def create_example_config(output_path: Path | str) -> Path:
    """Create an example configuration file."""
    output_path = Path(output_path)
    config = get_default_config()
    config.strict.tests_that_do_not_test_anything = True
    config.to_file(output_path)
    return output_path
