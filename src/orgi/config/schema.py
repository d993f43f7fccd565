"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_INCLUDE_EXTENSIONS = (
    ".cs", ".js", ".ts", ".jsx", ".tsx", ".py", ".java",
    ".cpp", ".c", ".h", ".hpp", ".go", ".rs", ".rb", ".php",
    ".scala", ".kt", ".swift", ".dart", ".lua", ".sh", ".bash", ".ps1",
    ".pl", ".sql", ".html", ".xml", ".css", ".scss", ".less",
)  # fmt: skip

DEFAULT_EXCLUDE_PATTERNS = (
    "bin/**",
    "obj/**",
    "node_modules/**",
    "dist/**",
    "build/**",
    "target/**",
    ".git/**",
    ".svn/**",
    "**/*.test.*",
    "**/*.spec.*",
    "**/vendor/**",
    "**/.vs/**",
    "**/.vscode/**",
)


class DocumentConfig(BaseModel):
    """Org document location."""

    path: Path = Path(".orgi/orgi.org")


class DiscoveryConfig(BaseModel):
    """Source file discovery configuration."""

    include_extensions: list[str] = list(DEFAULT_INCLUDE_EXTENSIONS)
    exclude_patterns: list[str] = list(DEFAULT_EXCLUDE_PATTERNS)

    @field_validator("include_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lower-case extensions and ensure a leading dot."""
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                raise ValueError("Extension cannot be empty")
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        return normalized


class RewriterConfig(BaseModel):
    """Source rewriter configuration."""

    backup_dir: Path = Path(".orgi/backups")
    max_backups: int = Field(10, ge=1, le=1000)


class GatherConfig(BaseModel):
    """Gather configuration."""

    title_max_length: int = Field(50, ge=4, le=500)


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path(".orgi/orgi.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    format: Literal["json", "console"] = "console"
    file: FileLoggingConfig = FileLoggingConfig()


class OrgiConfig(BaseSettings):
    """Root configuration for orgi."""

    document: DocumentConfig = DocumentConfig()
    discovery: DiscoveryConfig = DiscoveryConfig()
    rewriter: RewriterConfig = RewriterConfig()
    gather: GatherConfig = GatherConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_prefix="ORGI_",
        env_nested_delimiter="__",
    )
