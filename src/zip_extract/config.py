"""Configuration schema for the zip extractor."""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from .common import LoggingConfig


class ExtractionConfig(BaseModel):
    """Defaults applied to every extraction."""

    model_config = ConfigDict(extra='forbid')

    default_file_mode: int = Field(
        default=0o644,
        ge=0,
        le=0o777,
        description="Permission bits for files whose entry carries no unix mode"
    )
    default_dir_mode: int = Field(
        default=0o755,
        ge=0,
        le=0o777,
        description="Permission bits for implied directories and directory entries without a unix mode"
    )
    skip_macos_metadata: bool = Field(
        default=True,
        description="Skip __MACOSX/ resource fork entries"
    )

    @field_validator('default_file_mode', 'default_dir_mode', mode='before')
    @classmethod
    def parse_octal(cls, v):
        """Accept modes written as octal strings ("755", "0o755")."""
        if isinstance(v, str):
            try:
                return int(v, 8)
            except ValueError as e:
                raise ValueError(f"Invalid octal mode: {v!r}") from e
        return v


class ZipExtractConfig(BaseModel):
    """Root configuration for zip-extract."""

    model_config = ConfigDict(extra='forbid')

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
