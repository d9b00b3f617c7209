from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, conint, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import Defaults
from .filters import split_patterns
from .models import CaseSensitivity, FlattenCollisionPolicy

PhaseRoleName = Literal["single", "outer", "inner"]


class StageConfig(BaseSettings):
    """Run configuration loaded from ARTSTAGE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ARTSTAGE_",
        frozen=True,
        extra="ignore",
    )

    # Declarations
    manifest: Optional[Path] = Field(default=None, description="TOML manifest declaring artifacts")
    output_path: Optional[Path] = Field(default=None, description="Build output directory ($(OutputPath))")
    artifacts_path: Optional[Path] = Field(default=None, description="Distribution root ($(ArtifactsPath))")
    default_artifacts: bool = Field(
        default=True,
        description="Stage output_path into artifacts_path when both are set",
    )
    default_source: Optional[Path] = Field(default=None, description="Override for the default artifact source")
    default_include: str = Field(default=Defaults.INCLUDE)

    # Phase identity supplied by the host build
    phase_role: Optional[PhaseRoleName] = Field(default=None)
    configuration: str = Field(default="", description="Configuration built by this phase")
    configurations: str = Field(default="", description="All configurations of the fan-out")

    # Matching
    case_sensitivity: CaseSensitivity = Field(default="auto")
    flatten_collisions: FlattenCollisionPolicy = Field(default="last_wins")

    # Copy behaviour
    always_copy: bool = Field(default=False)
    compare_size: bool = Field(default=True)
    max_workers: conint(ge=1, le=64) = Field(default=Defaults.MAX_WORKERS)
    retry_count: conint(ge=0, le=100) = Field(default=Defaults.RETRY_COUNT)
    retry_wait_ms: conint(ge=0) = Field(default=Defaults.RETRY_WAIT_MS)
    dry_run: bool = Field(default=False)

    # Reporting
    fail_on_error: bool = Field(default=True, description="Exit non-zero when any entry fails")
    report_dir: Optional[Path] = Field(default=None, description="Where STAGE_REPORT.json is written")

    @field_validator("phase_role", mode="before")
    @classmethod
    def _normalize_role(cls, value):
        if isinstance(value, str):
            trimmed = value.strip().lower()
            return trimmed or None
        return value

    @field_validator("case_sensitivity", "flatten_collisions", mode="before")
    @classmethod
    def _normalize_lowercase(cls, value):
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_")
        return value

    @field_validator("manifest", "output_path", "artifacts_path", "default_source", "report_dir", mode="before")
    @classmethod
    def _empty_path_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def configuration_list(self) -> list[str]:
        return split_patterns(self.configurations)
