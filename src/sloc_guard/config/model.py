from __future__ import annotations

from datetime import date
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

CONFIG_VERSION = "2"
UNLIMITED = -1
DEFAULT_MAX_LINES = 500
DEFAULT_WARN_THRESHOLD = 0.8
DEFAULT_EXTENSIONS = ["rs", "go", "py", "js", "ts", "c", "cpp"]


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ScannerConfig(_Section):
    gitignore: bool = True
    exclude: List[str] = []


class ContentRule(_Section):
    pattern: str
    max_lines: int
    warn_at: Optional[int] = None
    warn_threshold: Optional[float] = None
    skip_comments: Optional[bool] = None
    skip_blank: Optional[bool] = None
    reason: Optional[str] = None
    expires: Optional[date] = None


class ContentOverride(_Section):
    path: str
    max_lines: int
    reason: Optional[str] = None


class LanguageRule(_Section):
    max_lines: Optional[int] = None
    warn_at: Optional[int] = None
    warn_threshold: Optional[float] = None
    skip_comments: Optional[bool] = None
    skip_blank: Optional[bool] = None


class ContentConfig(_Section):
    max_lines: int = DEFAULT_MAX_LINES
    warn_at: Optional[int] = None
    warn_threshold: float = DEFAULT_WARN_THRESHOLD
    skip_comments: bool = True
    skip_blank: bool = True
    extensions: List[str] = list(DEFAULT_EXTENSIONS)
    exclude: List[str] = []
    strict: bool = False
    languages: Dict[str, LanguageRule] = {}
    rules: List[ContentRule] = []
    overrides: List[ContentOverride] = []


class _StructureFilters(_Section):
    allow_extensions: List[str] = []
    allow_patterns: List[str] = []
    allow_files: List[str] = []
    allow_dirs: List[str] = []
    deny_extensions: List[str] = []
    deny_patterns: List[str] = []
    deny_files: List[str] = []
    deny_dirs: List[str] = []
    file_naming_pattern: Optional[str] = None

    def has_file_allow(self) -> bool:
        return bool(self.allow_extensions or self.allow_patterns or self.allow_files)

    def has_file_deny(self) -> bool:
        return bool(self.deny_extensions or self.deny_patterns or self.deny_files)


class StructureRule(_StructureFilters):
    scope: str
    max_files: Optional[int] = None
    max_subdirs: Optional[int] = None
    max_depth: Optional[int] = None
    relative_depth: bool = False
    warn_threshold: Optional[float] = None
    warn_files_at: Optional[int] = None
    warn_dirs_at: Optional[int] = None
    warn_files_threshold: Optional[float] = None
    warn_dirs_threshold: Optional[float] = None
    file_pattern: Optional[str] = None
    require_sibling: Optional[Union[str, List[str]]] = None
    reason: Optional[str] = None
    expires: Optional[date] = None


class StructureOverride(_Section):
    path: str
    max_files: Optional[int] = None
    max_subdirs: Optional[int] = None
    max_depth: Optional[int] = None
    reason: Optional[str] = None


class StructureConfig(_StructureFilters):
    max_files: Optional[int] = None
    max_subdirs: Optional[int] = None
    max_depth: Optional[int] = None
    warn_threshold: Optional[float] = None
    warn_files_at: Optional[int] = None
    warn_dirs_at: Optional[int] = None
    warn_files_threshold: Optional[float] = None
    warn_dirs_threshold: Optional[float] = None
    count_exclude: List[str] = []
    rules: List[StructureRule] = []
    overrides: List[StructureOverride] = []


class CustomLanguage(_Section):
    extensions: List[str] = []
    single_line_comments: List[str] = []
    multi_line_comments: List[List[str]] = []


class BaselineConfig(_Section):
    ratchet: Optional[Literal["warn", "auto", "strict"]] = None


class StatsReportConfig(_Section):
    exclude: List[str] = []
    top_count: Optional[int] = None
    breakdown_by: Optional[str] = None
    trend_since: Optional[str] = None


class StatsConfig(_Section):
    report: StatsReportConfig = StatsReportConfig()


class TrendConfig(_Section):
    max_entries: Optional[int] = None
    max_age_days: Optional[int] = None
    min_interval_secs: Optional[int] = None
    auto_snapshot_on_check: bool = False


class Config(_Section):
    version: Optional[str] = None
    extends: Optional[str] = None
    extends_sha256: Optional[str] = None
    scanner: ScannerConfig = ScannerConfig()
    content: ContentConfig = ContentConfig()
    structure: StructureConfig = StructureConfig()
    languages: Dict[str, CustomLanguage] = {}
    baseline: BaselineConfig = BaselineConfig()
    stats: StatsConfig = StatsConfig()
    trend: TrendConfig = TrendConfig()
