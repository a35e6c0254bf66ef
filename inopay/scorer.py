"""
Sovereignty Scorer

Computes a 0-100 Sovereignty Score for a cleaned file set.
A pure function of its inputs: no I/O, no clock, no randomness, and the
result does not depend on the iteration order of the input mapping.

Score = 100 minus one penalty per finding, by severity:
  CRITICAL (-15)  residual vendor import or quoted vendor package name
                  in code, suspicious package still declared in a
                  package.json, credential-shaped string
  MAJOR    (-8)   telemetry domain still referenced, soft-detector
                  pattern still present in a source file
  MINOR    (-2)   vendor comment markers, empty plugin/define leftovers

One finding per (file, rule). Protected and whitelisted files are not
scored: they are expected to mention the vendors.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from inopay.patterns import (
    COMMENT_SIGNALS,
    DEPENDENCY_KINDS,
    EMPTY_CONFIG_SIGNALS,
    IMPORT_SIGNALS,
    LOCK_FILES,
    SECRET_PATTERNS,
    SPECIFIER_SIGNALS,
    SUSPICIOUS_PACKAGES,
    TELEMETRY_DOMAINS,
)
from inopay.protection import protection_reason
from inopay.rewriters import (
    SOURCE_EXTENSIONS,
    STYLESHEET_EXTENSIONS,
    basename,
    detect_suspicious_patterns,
    is_suspicious_package,
)

CRITICAL = "CRITICAL"
MAJOR = "MAJOR"
MINOR = "MINOR"

PENALTIES = {CRITICAL: 15, MAJOR: 8, MINOR: 2}
SEVERITY_RANK = {CRITICAL: 0, MAJOR: 1, MINOR: 2}

_MARKUP_EXTENSIONS = (".html", ".htm", ".vue", ".svelte")

# Letter grades, highest threshold first
GRADES = (
    (95, "A+"), (90, "A"), (85, "A-"),
    (80, "B+"), (75, "B"), (70, "B-"),
    (65, "C+"), (60, "C"), (55, "C-"),
    (50, "D"),
)


@dataclass(frozen=True)
class Finding:
    severity: str
    path: str
    rule: str
    description: str

    @property
    def detail(self) -> str:
        return f"{self.severity}: {self.path}: {self.description}"

    def sort_key(self) -> tuple:
        return (SEVERITY_RANK[self.severity], self.path, self.rule, self.description)

    def to_dict(self) -> dict:
        return {
            "severity": self.severity,
            "path": self.path,
            "rule": self.rule,
            "description": self.description,
        }


@dataclass(frozen=True)
class SovereigntyReport:
    score: int
    findings: tuple[Finding, ...] = ()
    baseline_score: Optional[int] = None
    breakdown: dict = field(default_factory=dict)

    @property
    def details(self) -> list[str]:
        return [f.detail for f in self.findings]

    @property
    def counts(self) -> dict[str, int]:
        tally = {CRITICAL: 0, MAJOR: 0, MINOR: 0}
        for f in self.findings:
            tally[f.severity] += 1
        return tally

    @property
    def grade(self) -> str:
        return grade(self.score)

    def paths(self, severity: Optional[str] = None) -> list[str]:
        """Distinct file paths named by findings, in finding order."""
        seen: dict[str, None] = {}
        for f in self.findings:
            if severity is None or f.severity == severity:
                seen.setdefault(f.path, None)
        return list(seen)

    def to_dict(self) -> dict:
        counts = self.counts
        return {
            "score": self.score,
            "grade": self.grade,
            "details": self.details,
            "findings": [f.to_dict() for f in self.findings],
            "critical_issues": counts[CRITICAL],
            "major_issues": counts[MAJOR],
            "minor_issues": counts[MINOR],
            "baseline_score": self.baseline_score,
            "breakdown": self.breakdown,
        }


def grade(score: int) -> str:
    for threshold, letter in GRADES:
        if score >= threshold:
            return letter
    return "F"


# ============================================================
# FINDING COLLECTION
# ============================================================

def _declared_suspicious_packages(content: str) -> list[str]:
    try:
        pkg = json.loads(content)
    except json.JSONDecodeError:
        # Unparseable manifest: fall back to a quoted-name search
        return [name for name in SUSPICIOUS_PACKAGES if f'"{name}"' in content]
    if not isinstance(pkg, dict):
        return []
    found = []
    for section, _ in DEPENDENCY_KINDS:
        deps = pkg.get(section)
        if isinstance(deps, dict):
            found.extend(name for name in deps if is_suspicious_package(name))
    return sorted(set(found))


_HOST_CHAR = re.compile(r"[\w.-]")


def _telemetry_hosts(content: str) -> list[str]:
    """Full host names (telemetry.lovable.dev) around each domain hit."""
    lowered = content.lower()
    hosts = set()
    for domain in TELEMETRY_DOMAINS:
        start = lowered.find(domain)
        while start != -1:
            left, right = start, start + len(domain)
            while left > 0 and _HOST_CHAR.match(lowered[left - 1]):
                left -= 1
            while right < len(lowered) and _HOST_CHAR.match(lowered[right]):
                right += 1
            hosts.add(lowered[left:right])
            start = lowered.find(domain, right)
    return sorted(hosts)


def _file_findings(path: str, content: str) -> list[Finding]:
    name = basename(path)
    lowered = path.lower()
    if name in LOCK_FILES:
        return []

    is_source = lowered.endswith(SOURCE_EXTENSIONS)
    is_markup = lowered.endswith(_MARKUP_EXTENSIONS)
    is_code = is_source or is_markup
    scans_telemetry = (
        is_code
        or lowered.endswith(".json")
        or lowered.endswith(STYLESHEET_EXTENSIONS)
        or name == ".env"
        or name.startswith(".env.")
    )

    findings: list[Finding] = []

    # --- CRITICAL ---
    if is_code:
        hits = [
            s.description for s in IMPORT_SIGNALS + SPECIFIER_SIGNALS
            if s.regex.search(content)
        ]
        if hits:
            findings.append(Finding(
                CRITICAL, path, "PROPRIETARY_IMPORT",
                "import propriétaire résiduel (" + ", ".join(hits) + ")",
            ))

    if name == "package.json":
        for pkg in _declared_suspicious_packages(content):
            findings.append(Finding(
                CRITICAL, path, f"PACKAGE:{pkg}", f"paquet propriétaire déclaré: {pkg}",
            ))

    for secret in SECRET_PATTERNS:
        if secret.regex.search(content):
            findings.append(Finding(
                CRITICAL, path, f"SECRET:{secret.id}", f"secret exposé: {secret.description}",
            ))

    # --- MAJOR ---
    if scans_telemetry:
        hosts = _telemetry_hosts(content)
        if hosts:
            findings.append(Finding(
                MAJOR, path, "TELEMETRY", "domaine de télémétrie: " + ", ".join(hosts),
            ))

    if is_source:
        for entry in detect_suspicious_patterns(path, content):
            description = entry[len(path) + 2:]
            findings.append(Finding(
                MAJOR, path, f"SUSPICIOUS:{description}", f"motif suspect non résolu: {description}",
            ))

    # --- MINOR ---
    if is_code:
        markers = [s.description for s in COMMENT_SIGNALS if s.regex.search(content)]
        if markers:
            findings.append(Finding(
                MINOR, path, "COMMENT_MARKER", "marqueur propriétaire: " + ", ".join(markers),
            ))

    if is_source:
        for signal in EMPTY_CONFIG_SIGNALS:
            if signal.regex.search(content):
                findings.append(Finding(
                    MINOR, path, f"EMPTY:{signal.id}", f"configuration résiduelle: {signal.description}",
                ))

    return findings


def collect_findings(files: Mapping[str, str]) -> list[Finding]:
    findings: list[Finding] = []
    for path in sorted(files):
        content = files[path]
        if protection_reason(path, content):
            continue
        findings.extend(_file_findings(path, content))
    findings.sort(key=Finding.sort_key)
    return findings


def _penalize(findings: list[Finding]) -> tuple[int, dict]:
    score = 100
    breakdown: dict = {
        "starting_score": 100,
        "penalties": {CRITICAL: 0, MAJOR: 0, MINOR: 0},
    }
    for f in findings:
        pen = PENALTIES[f.severity]
        score -= pen
        breakdown["penalties"][f.severity] -= pen
    score = max(0, min(100, score))
    breakdown["final_score"] = score
    return score, breakdown


# ============================================================
# ENTRY POINT
# ============================================================

def score_sovereignty(
    original: Optional[Mapping[str, str]],
    cleaned: Mapping[str, str],
) -> SovereigntyReport:
    """
    Score the cleaned set.

    ``original`` only feeds ``baseline_score`` (what the project scored
    before cleaning); the score itself depends on ``cleaned`` alone.
    """
    findings = collect_findings(cleaned)
    score, breakdown = _penalize(findings)

    baseline = None
    if original is not None:
        baseline, _ = _penalize(collect_findings(original))

    return SovereigntyReport(
        score=score,
        findings=tuple(findings),
        baseline_score=baseline,
        breakdown=breakdown,
    )
