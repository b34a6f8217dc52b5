"""Configuration management for testnow."""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from testnow.core.engine import DEFAULT_TIMEOUT


class ExecutionConfig(BaseModel):
    """Test call execution configuration."""

    skip_timeboxed_tests: bool = Field(default=False, description="Skip calls registered with a timeout")
    default_timeout_seconds: float = Field(
        default=DEFAULT_TIMEOUT, description="Timeout of calls registered without one"
    )

    @field_validator("default_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Default timeout must be positive")
        return v


class DiscoveryConfig(BaseModel):
    """Test file discovery configuration."""

    extensions: list[str] = Field(default_factory=lambda: ["py"], description="Extensions of test files")
    depth_limit: Optional[int] = Field(default=None, description="How many folder levels to walk (unlimited if unset)")
    only_last_modified: bool = Field(default=False, description="Only run recently modified test files")
    max_execution_age_seconds: float = Field(
        default=1800, description="How recent a file must be with only_last_modified"
    )

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        extensions = [extension.lstrip(".") for extension in v if extension.strip(". ")]
        if not extensions:
            raise ValueError("At least one test file extension is required")
        return extensions

    @field_validator("depth_limit")
    @classmethod
    def validate_depth_limit(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Depth limit cannot be negative")
        return v

    @field_validator("max_execution_age_seconds")
    @classmethod
    def validate_max_age(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Maximum execution age must be positive")
        return v


class TestNowConfig(BaseModel):
    """Main configuration for testnow."""

    __test__ = False

    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "TestNowConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        return cls.model_validate(data)

    @classmethod
    def find_and_load(cls, start_dir: Path | str | None = None) -> "TestNowConfig":
        """Find and load configuration file, searching up the directory tree."""
        if start_dir is None:
            start_dir = Path.cwd()
        else:
            start_dir = Path(start_dir)

        config_names = ["testnow.json", ".testnow.json"]

        # Search up the directory tree, root included
        current = start_dir.resolve()
        while True:
            for name in config_names:
                config_path = current / name
                if config_path.exists():
                    return cls.from_file(config_path)
            if current == current.parent:
                break
            current = current.parent

        raise FileNotFoundError(
            "No configuration file found. Create testnow.json or run 'testnow init'"
        )

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)


def get_default_config() -> TestNowConfig:
    """Return a default configuration."""
    return TestNowConfig()


def create_example_config(output_path: Path | str) -> Path:
    """Create an example configuration file."""
    output_path = Path(output_path)
    config = get_default_config()
    config.discovery.depth_limit = 8
    config.to_file(output_path)
    return output_path
