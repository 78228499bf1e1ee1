"""Run configuration."""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import SortCriterion

DEFAULT_STAGING_PREFIX = "~dirsort_"


class SortSettings(BaseSettings):
    """Settings for a re-sequencing run, loaded from DIRSORT_* environment variables.

    CLI options override these values. The settings object is handed to the
    components explicitly; nothing reads it from global state.
    """

    sort_key: SortCriterion = Field(
        default=SortCriterion.NAME, description="Key used to order entries"
    )
    simulate: bool = Field(
        default=False, description="Log intended actions without moving anything"
    )
    preserve_protected: bool = Field(
        default=True,
        description="Move ReadOnly/Hidden entries and restore their attributes "
        "(when False they are skipped)",
    )
    staging_prefix: str = Field(
        default=DEFAULT_STAGING_PREFIX,
        description="Leaf-name prefix of temporary staging folders",
    )
    exclude: List[str] = Field(
        default_factory=list,
        description="Extra leaf names or full paths that are never touched",
    )
    verbose: bool = False

    model_config = SettingsConfigDict(
        env_prefix="DIRSORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
