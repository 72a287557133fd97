"""Configuration management for Corpus Miner."""

import json
import logging
from pathlib import Path
from typing import List, Optional, Any

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class FilterConfig(BaseModel):
    """Additional file patterns layered on top of the language policy."""

    extra_accept_patterns: List[str] = Field(
        default_factory=list,
        description="gitwildmatch patterns of files to mine in addition to the policy",
    )
    extra_deny_patterns: List[str] = Field(
        default_factory=list,
        description="gitwildmatch patterns of files to flag as denied",
    )


class StorageConfig(BaseModel):
    """Configuration for the sharded content store."""

    shard_fanout: int = Field(
        default=1000,
        ge=2,
        description="Maximum number of entries per shard directory",
    )
    shard_depth: int = Field(
        default=2,
        ge=1,
        description="Number of directory levels between the store root and a blob",
    )
    index_filename: str = Field(
        default="content_index.bin",
        description="Name of the persistent hash index inside the data directory",
    )


class GitConfig(BaseModel):
    """Configuration for git process invocation."""

    # None means no timeout, a hung clone only blocks its own worker
    clone_timeout: Optional[float] = Field(
        default=None, description="Clone timeout in seconds"
    )
    command_timeout: Optional[float] = Field(
        default=None,
        description="Timeout in seconds for branch, history and blob commands",
    )
    follow_renames: bool = Field(
        default=True, description="Follow renames when listing file history"
    )


class Config(BaseModel):
    """Main configuration for Corpus Miner."""

    output_path: Path = Field(
        default=Path("corpus-output"),
        description="Root directory for temp, projects, data and stats",
    )
    threads: int = Field(default=4, ge=1, description="Number of worker threads")
    language: str = Field(
        default="javascript", description="Name of the file classification policy"
    )

    filters: FilterConfig = Field(default_factory=FilterConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    git: GitConfig = Field(default_factory=GitConfig)

    @field_validator("output_path", mode="before")
    @classmethod
    def convert_path(cls, v: Any) -> Path:
        """Convert string paths to Path objects."""
        if isinstance(v, str):
            return Path(v)
        if isinstance(v, Path):
            return v
        raise ValueError(f"Expected str or Path, got {type(v)}")

    @field_validator("language")
    @classmethod
    def normalize_language(cls, v: str) -> str:
        """Language policy names are case-insensitive and must name a policy."""
        # pattern_list imports FilterConfig from this module
        from .filtering.pattern_list import LANGUAGE_POLICIES

        key = v.strip().lower()
        if key not in LANGUAGE_POLICIES:
            supported = ", ".join(sorted(LANGUAGE_POLICIES))
            raise ValueError(f"Unknown language policy '{v}'. Supported: {supported}")
        return key

    @property
    def temp_path(self) -> Path:
        return self.output_path / "temp"

    @property
    def projects_path(self) -> Path:
        return self.output_path / "projects"

    @property
    def data_path(self) -> Path:
        return self.output_path / "data"

    @property
    def stats_path(self) -> Path:
        return self.output_path / "stats"

    @property
    def logs_path(self) -> Path:
        return self.output_path / "logs"


class ConfigManager:
    """Manages configuration loading, saving, and validation."""

    DEFAULT_CONFIG_PATH = Path(".corpus-miner/config.json")

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load configuration from file or create default."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)

                if "output_path" in data:
                    data["output_path"] = str(
                        self._resolve_relative_path(data["output_path"])
                    )

                self._config = Config(**data)
            except Exception as e:
                raise ValueError(f"Failed to load config from {self.config_path}: {e}")
        else:
            self._config = Config()

        return self._config

    def save(self, config: Optional[Config] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = config.model_dump(mode="json")
        config_dict["output_path"] = self._make_relative_to_config(config.output_path)

        with open(self.config_path, "w") as f:
            json.dump(config_dict, f, indent=2)

        self._config = config

    def get_config(self) -> Config:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self.load()
        if self._config is None:
            raise RuntimeError("Failed to load configuration")
        return self._config

    def create_default_config(
        self, output_path: Path = Path("corpus-output")
    ) -> Config:
        """Create and save a default configuration for the given output root."""
        config = Config(output_path=output_path)
        self._config = config
        self.save()
        return config

    def update_config(self, **kwargs: Any) -> Config:
        """Update configuration with new values."""
        config = self.get_config()

        config_dict = config.model_dump()
        config_dict.update(kwargs)

        new_config = Config(**config_dict)
        self._config = new_config
        self.save()
        return new_config

    @staticmethod
    def find_config_path(start_dir: Optional[Path] = None) -> Optional[Path]:
        """Find .corpus-miner/config.json by walking up the directory tree.

        Args:
            start_dir: Directory to start searching from (default: current directory)

        Returns:
            Path to config.json if found, None otherwise
        """
        current = start_dir or Path.cwd()

        for path in [current] + list(current.parents):
            config_path = path / ".corpus-miner" / "config.json"
            if config_path.exists():
                return config_path

        return None

    @classmethod
    def create_with_backtrack(cls, start_dir: Optional[Path] = None) -> "ConfigManager":
        """Create ConfigManager using the nearest config file, if any."""
        config_path = cls.find_config_path(start_dir)
        if config_path is None:
            base = start_dir or Path.cwd()
            config_path = base / cls.DEFAULT_CONFIG_PATH
        return cls(config_path)

    def _config_root(self) -> Path:
        # .corpus-miner/config.json -> directory holding .corpus-miner
        return self.config_path.resolve().parent.parent

    def _make_relative_to_config(self, path: Path) -> str:
        """Store the output path relative to the config root when possible."""
        try:
            return str(Path(path).resolve().relative_to(self._config_root()))
        except ValueError:
            return str(Path(path).resolve())

    def _resolve_relative_path(self, path_str: str) -> Path:
        path = Path(path_str)
        if path.is_absolute():
            return path
        return (self._config_root() / path).resolve()
