"""
Data model shared by the pipeline stages.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


DIRNAME_VARIABLE = "__dirname"


class TokenKind(str, Enum):
    LITERAL = "literal"
    VARIABLE = "variable"


class Token(BaseModel):
    """One ``+``-segment of a path.join component: a literal string or a variable reference."""
    kind: TokenKind
    value: str  # literal text without quotes, or the variable's source text

    @classmethod
    def literal(cls, text):
        return cls(kind=TokenKind.LITERAL, value=text)

    @classmethod
    def variable(cls, source):
        return cls(kind=TokenKind.VARIABLE, value=source)

    @property
    def is_literal(self) -> bool:
        return self.kind == TokenKind.LITERAL


class ImportKind(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"


class ImportSite(BaseModel):
    """One require() expression found in an entry module."""
    raw_match_text: str
    kind: ImportKind
    target: Optional[str] = None  # static literal, quotes stripped
    components: List[List[Token]] = Field(default_factory=list)
    pattern: Optional[str] = None
    search_root: Optional[str] = None
    canonical_id: Optional[str] = None
    lookup_key: Optional[str] = None  # JavaScript expression used inside the registry lookup
    external: bool = False
    resolved_files: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_dynamic(self) -> bool:
        return self.kind == ImportKind.DYNAMIC


class EntryModule(BaseModel):
    path: str
    raw_text: str


class FolderStatus(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


class FolderOutcome(BaseModel):
    """Terminal state of one top-level folder's sub-pipeline."""
    folder: str
    status: FolderStatus
    entry_module: Optional[str] = None
    output_module: Optional[str] = None
    sites: List[ImportSite] = Field(default_factory=list)
    replacements: int = 0
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.status == FolderStatus.OK


class RunReport(BaseModel):
    """Success payload of a whole run."""
    success: bool = True
    registry_path: Optional[str] = None
    rewritten: List[str] = Field(default_factory=list)
    resolved_files: int = 0
    registry_entries: int = 0
    skipped: List[str] = Field(default_factory=list)
    failures: List[Dict[str, Any]] = Field(default_factory=list)
    packed_files: List[str] = Field(default_factory=list)
    warnings: List[Any] = Field(default_factory=list)
    copy_skip_list: List[str] = Field(default_factory=list)
    copy_plan: List[str] = Field(default_factory=list)
