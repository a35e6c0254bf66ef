"""
API Schemas — Request and Response Models

Pydantic models for the Inopay liberation API.
"""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field


# ============================================================
# CLEAN
# ============================================================

class CleanRequest(BaseModel):
    """POST /clean request body."""
    files: dict[str, str] = Field(..., description="Project files, path -> content.")
    files_to_remove: list[str] = Field(
        default_factory=list,
        description="Paths an earlier scan flagged for removal.",
    )
    verify: bool = Field(True, description="Run the verification pass after cleaning.")

    model_config = {"json_schema_extra": {"examples": [
        {
            "files": {
                "package.json": '{"dependencies": {"react": "^18.3.1", "lovable-tagger": "^1.0.0"}}',
                "src/App.tsx": "import { componentTagger } from 'lovable-tagger';\nexport default function App() { return null }\n",
            },
            "files_to_remove": [],
        },
    ]}}


class FindingResponse(BaseModel):
    severity: str
    path: str
    rule: str
    description: str


class ReportResponse(BaseModel):
    """Sovereignty report, also the POST /score response body."""
    score: int
    grade: str
    details: list[str]
    findings: list[FindingResponse]
    critical_issues: int
    major_issues: int
    minor_issues: int
    baseline_score: Optional[int] = None
    breakdown: dict = Field(default_factory=dict)


class StatsResponse(BaseModel):
    files_removed: int
    files_cleaned: int
    files_verified: int
    files_protected: int
    files_rechecked: int
    packages_removed: int
    polyfills_generated: int
    suspicious_patterns: list[str]
    sovereignty_score: int
    critical_issues: int
    major_issues: int
    minor_issues: int
    syntax_errors: list[str]
    catalog_version: str


class FileResultResponse(BaseModel):
    path: str
    changes: list[str]
    removed: bool
    protected: bool
    modified: bool
    suspicious: list[str]
    rewriter: Optional[str] = None


class CleanResponse(BaseModel):
    """POST /clean response body."""
    cleaned: dict[str, str]
    stats: StatsResponse
    report: ReportResponse
    files: list[FileResultResponse]
    polyfills: list[str]
    edge_functions: dict[str, str]
    sql_schema: str
    env_example: str
    state: str


# ============================================================
# SCORE
# ============================================================

class ScoreRequest(BaseModel):
    """POST /score request body."""
    cleaned: dict[str, str]
    original: Optional[dict[str, str]] = None


# ============================================================
# POLYFILLS
# ============================================================

class PolyfillRequest(BaseModel):
    """POST /polyfills request body."""
    cleaned: dict[str, str]
    original: Optional[dict[str, str]] = None


class PolyfillResponse(BaseModel):
    hooks: list[str]
    generated: dict[str, str]


# ============================================================
# ASSIST
# ============================================================

class AssistRequest(BaseModel):
    """POST /assist request body."""
    path: str = Field(..., min_length=1, max_length=1024)
    content: str = Field(..., max_length=50_000)


class AssistResponse(BaseModel):
    """POST /assist response body."""
    path: str
    original: str
    cleaned: str
    changes_made: list[str]
    triggered: bool
    accepted: bool
    note: Optional[str] = None
    error: Optional[str] = None
    verification: Optional[dict] = None
    iteration_count: Optional[int] = None
    iterations: Optional[list[dict]] = None
    converged: Optional[bool] = None
    diff_spans: Optional[list[dict]] = None


# ============================================================
# MANIFEST
# ============================================================

class ManifestRequest(BaseModel):
    """POST /manifest request body."""
    project_name: str = Field(..., min_length=1, max_length=200)
    cleaned: dict[str, str]
    include_report: bool = Field(False, description="Also render the HTML liberation report.")


class ManifestResponse(BaseModel):
    manifest: dict
    report_html: Optional[str] = None


# ============================================================
# HEALTH
# ============================================================

class HealthResponse(BaseModel):
    status: str
    version: str
    catalog_version: str
    llm_provider: str
    cache: dict
