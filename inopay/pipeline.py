"""
Pipeline Orchestrator — Liberation Run

Drives one liberation of a project file set through its states:

  filtering -> cleaning -> polyfill_generation -> verification -> scored

Per-file work goes through ``clean_file`` (protection, removal, rewriters)
and produces immutable ``CleaningResult`` records. Files are independent,
so cleaning may run on a thread pool; counters are reduced from the
records afterwards, never shared between workers.

Verification runs at most once: files the first score still flags are
passed through the generic source rewriter again, then the set is
rescored. Whatever survives is reported, not retried.

Usage:
    from inopay.pipeline import clean
    result = clean({"package.json": "...", "src/App.tsx": "..."})
    result.cleaned            # path -> content
    result.stats.sovereignty_score
"""

from __future__ import annotations

import dataclasses
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Collection, Mapping, Optional

from inopay.cache import CleaningCache
from inopay.patterns import CATALOG_VERSION
from inopay.polyfills import PolyfillBundle, synthesize_polyfills
from inopay.protection import protection_reason
from inopay.rewriters import (
    SOURCE_EXTENSIONS,
    CleaningResult,
    clean_file,
    clean_source_file,
    generate_env_example,
)
from inopay.scorer import CRITICAL, MAJOR, MINOR, SovereigntyReport, score_sovereignty
from inopay.validation import validate_syntax

logger = logging.getLogger(__name__)

STATE_FILTERING = "filtering"
STATE_CLEANING = "cleaning"
STATE_POLYFILLS = "polyfill_generation"
STATE_VERIFICATION = "verification"
STATE_SCORED = "scored"

_EDGE_FUNCTION = re.compile(r"^supabase/functions/([^/]+)/index\.ts$")


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass(frozen=True)
class CleaningStats:
    files_removed: int = 0
    files_cleaned: int = 0
    files_verified: int = 0
    files_protected: int = 0
    files_rechecked: int = 0
    packages_removed: int = 0
    polyfills_generated: int = 0
    suspicious_patterns: tuple[str, ...] = ()
    sovereignty_score: int = 100
    critical_issues: int = 0
    major_issues: int = 0
    minor_issues: int = 0
    syntax_errors: tuple[str, ...] = ()
    catalog_version: str = CATALOG_VERSION

    def to_dict(self) -> dict:
        data = dataclasses.asdict(self)
        data["suspicious_patterns"] = list(self.suspicious_patterns)
        data["syntax_errors"] = list(self.syntax_errors)
        return data


@dataclass
class PipelineResult:
    cleaned: dict[str, str]
    stats: CleaningStats
    report: SovereigntyReport
    results: list[CleaningResult] = field(default_factory=list)
    polyfills: PolyfillBundle = field(default_factory=PolyfillBundle)
    edge_functions: dict[str, str] = field(default_factory=dict)
    sql_schema: str = ""
    env_example: str = ""
    states: tuple[str, ...] = ()

    @property
    def state(self) -> str:
        return self.states[-1] if self.states else STATE_FILTERING

    def to_dict(self) -> dict:
        return {
            "cleaned": self.cleaned,
            "stats": self.stats.to_dict(),
            "report": self.report.to_dict(),
            "files": [r.to_dict() for r in self.results],
            "polyfills": list(self.polyfills.hooks),
            "edge_functions": self.edge_functions,
            "sql_schema": self.sql_schema,
            "env_example": self.env_example,
            "state": self.state,
        }


# ============================================================
# STAGES
# ============================================================

def _clean_one(
    path: str,
    content: str,
    hints: frozenset[str],
    cache: Optional[CleaningCache],
    user_id: str,
) -> CleaningResult:
    flagged = path in hints
    if cache is not None:
        cached = cache.get(path, content, user_id, flagged)
        if cached is not None:
            return cached
    result = clean_file(path, content, hints)
    if cache is not None:
        cache.put(path, content, result, user_id, flagged)
    return result


def _verify(
    cleaned: dict[str, str],
    results: dict[str, CleaningResult],
    report: SovereigntyReport,
    generated: Collection[str],
) -> int:
    """Re-run the generic source rewriter on flagged files. Returns files changed."""
    changed = 0
    for path in report.paths():
        if path not in cleaned or path in generated:
            continue
        if not path.lower().endswith(SOURCE_EXTENSIONS):
            continue
        content = cleaned[path]
        if protection_reason(path, content):
            continue

        outcome = clean_source_file(content, path)
        if outcome.cleaned == content:
            continue

        cleaned[path] = outcome.cleaned
        changed += 1
        previous = results.get(path)
        if previous is not None:
            results[path] = dataclasses.replace(
                previous,
                cleaned_content=outcome.cleaned,
                changes=previous.changes + outcome.changes,
                suspicious=outcome.suspicious,
            )
    return changed


def _syntax_regressions(results: list[CleaningResult]) -> list[str]:
    """Files that were balanced before cleaning and are not after."""
    errors = []
    for r in results:
        if not r.modified:
            continue
        before = validate_syntax(r.original_content, r.path)
        if not before.valid:
            continue
        after = validate_syntax(r.cleaned_content, r.path)
        if not after.valid:
            errors.append(f"{r.path}: {after.error}")
    return errors


def extract_edge_functions(cleaned: Mapping[str, str]) -> dict[str, str]:
    """Supabase edge functions (``supabase/functions/<name>/index.ts``), ``_shared`` excluded."""
    functions = {}
    for path, content in cleaned.items():
        match = _EDGE_FUNCTION.match(path)
        if match and match.group(1) != "_shared":
            functions[match.group(1)] = content
    return dict(sorted(functions.items()))


def extract_sql_schema(cleaned: Mapping[str, str]) -> str:
    """Concatenated SQL from ``.sql`` files and migrations, in path order."""
    parts = [
        cleaned[path]
        for path in sorted(cleaned)
        if path.lower().endswith(".sql") or "migrations/" in path
    ]
    return "\n\n".join(parts)


# ============================================================
# ENTRY POINT
# ============================================================

def clean(
    files: Mapping[str, str],
    previously_flagged: Collection[str] = (),
    *,
    verify: bool = True,
    workers: Optional[int] = None,
    cache: Optional[CleaningCache] = None,
    user_id: str = "",
) -> PipelineResult:
    """
    Run a full liberation over ``files`` (path -> content).

    ``previously_flagged`` lists paths an earlier scan marked for removal.
    The returned ``cleaned`` map holds every kept file plus generated
    polyfills; removed files are absent.
    """
    start = time.monotonic()
    states = [STATE_FILTERING]
    original = dict(files)
    hints = frozenset(previously_flagged)

    # --- Cleaning ---
    states.append(STATE_CLEANING)
    items = list(original.items())
    if workers and workers > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            ordered = list(pool.map(
                lambda item: _clean_one(item[0], item[1], hints, cache, user_id), items,
            ))
    else:
        ordered = [_clean_one(path, content, hints, cache, user_id) for path, content in items]

    results = {r.path: r for r in ordered}
    cleaned = {r.path: r.cleaned_content for r in ordered if not r.removed}

    # --- Polyfill generation ---
    states.append(STATE_POLYFILLS)
    bundle = synthesize_polyfills(cleaned, original)
    cleaned.update(bundle.generated)

    # --- Verification (at most once) ---
    report = score_sovereignty(original, cleaned)
    rechecked = 0
    if verify and report.findings:
        states.append(STATE_VERIFICATION)
        rechecked = _verify(cleaned, results, report, bundle.generated)
        if rechecked:
            report = score_sovereignty(original, cleaned)

    states.append(STATE_SCORED)

    # --- Reduce ---
    final = [results[path] for path, _ in items]
    counts = report.counts
    stats = CleaningStats(
        files_removed=sum(1 for r in final if r.removed),
        files_cleaned=sum(1 for r in final if r.modified),
        files_verified=sum(
            1 for r in final if not (r.removed or r.protected or r.modified)
        ),
        files_protected=sum(1 for r in final if r.protected),
        files_rechecked=rechecked,
        packages_removed=sum(r.packages_removed for r in final),
        polyfills_generated=bundle.count,
        suspicious_patterns=tuple(s for r in final for s in r.suspicious),
        sovereignty_score=report.score,
        critical_issues=counts[CRITICAL],
        major_issues=counts[MAJOR],
        minor_issues=counts[MINOR],
        syntax_errors=tuple(_syntax_regressions(final)),
    )

    logger.info(
        "Liberation complete",
        extra={
            "files_count": len(original),
            "files_removed": stats.files_removed,
            "files_cleaned": stats.files_cleaned,
            "sovereignty_score": report.score,
            "findings_count": len(report.findings),
            "hooks": list(bundle.hooks) or None,
            "catalog_version": CATALOG_VERSION,
            "duration_ms": round((time.monotonic() - start) * 1000, 1),
        },
    )

    return PipelineResult(
        cleaned=cleaned,
        stats=stats,
        report=report,
        results=final,
        polyfills=bundle,
        edge_functions=extract_edge_functions(cleaned),
        sql_schema=extract_sql_schema(cleaned),
        env_example=generate_env_example(cleaned),
        states=tuple(states),
    )
