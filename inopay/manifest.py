"""
Sovereignty Manifest and Liberation Report

Two artifacts shipped alongside a liberated project:
  - sovereignty_manifest.json: per-file SHA-256 hashes, a global
    checksum over them, and the audit score/grade. Lets the owner
    prove later that the delivered tree is the one that was scored.
  - LIBERATION_REPORT.html: self-contained, human-readable summary.

Usage:
    from inopay.manifest import build_manifest, generate_report_html
    manifest = build_manifest("my-app", result.cleaned, result.report, result.stats)
    html = generate_report_html("my-app", result.report, result.stats)
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from html import escape
from typing import Mapping, Optional

from inopay.config import settings
from inopay.patterns import CATALOG_VERSION
from inopay.pipeline import CleaningStats
from inopay.scorer import CRITICAL, MAJOR, MINOR, SovereigntyReport

MANIFEST_VERSION = "1.0.0"
MAX_REPORT_FINDINGS = 50


def file_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def compute_checksum(files: list[dict]) -> str:
    """SHA-256 over the canonical JSON of the (path, hash) list."""
    canonical = json.dumps(files, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def build_manifest(
    project_name: str,
    cleaned: Mapping[str, str],
    report: SovereigntyReport,
    stats: Optional[CleaningStats] = None,
    generated_at: Optional[str] = None,
) -> dict:
    """
    Manifest for a cleaned file set.

    The checksum covers paths and contents only, so two runs over the
    same tree produce the same checksum whatever their timestamps.
    """
    files = [{"path": path, "hash": file_hash(cleaned[path])} for path in sorted(cleaned)]
    manifest = {
        "version": MANIFEST_VERSION,
        "engine_version": settings.ENGINE_VERSION,
        "catalog_version": CATALOG_VERSION,
        "generated_at": generated_at or datetime.now(timezone.utc).isoformat(),
        "project_name": project_name,
        "audit_score": report.score,
        "sovereignty_grade": report.grade,
        "checksum": compute_checksum(files),
        "files": files,
    }
    if stats is not None:
        manifest["stats"] = stats.to_dict()
    return manifest


def verify_manifest(manifest: dict, files: Mapping[str, str]) -> list[str]:
    """Paths whose content no longer matches the manifest (missing, extra or changed)."""
    recorded = {entry["path"]: entry["hash"] for entry in manifest.get("files", [])}
    mismatched = [
        path for path, digest in recorded.items()
        if path not in files or file_hash(files[path]) != digest
    ]
    mismatched.extend(path for path in files if path not in recorded)
    return sorted(mismatched)


def generate_report_html(
    project_name: str,
    report: SovereigntyReport,
    stats: Optional[CleaningStats] = None,
    generated_at: Optional[str] = None,
) -> str:
    """Generate a self-contained HTML liberation report."""
    score = report.score
    counts = report.counts

    if score >= settings.MIN_SCORE:
        status_color = "#10b981"
        status_text = "Code souverain"
    elif score >= 70:
        status_color = "#f59e0b"
        status_text = "Révision recommandée"
    else:
        status_color = "#ef4444"
        status_text = "Dépendances propriétaires restantes"

    # Build findings HTML
    findings_html = ""
    if report.findings:
        for f in report.findings[:MAX_REPORT_FINDINGS]:
            sev_color = {
                CRITICAL: "#dc2626",
                MAJOR: "#f59e0b",
                MINOR: "#94a3b8",
            }.get(f.severity, "#94a3b8")
            findings_html += f"""
      <div style="border-left:3px solid {sev_color};padding:8px 12px;margin:6px 0;
                  background:#f8fafc;border-radius:0 4px 4px 0;">
        <div style="font-weight:600;font-size:13px;">{escape(f.path)}</div>
        <div style="font-size:12px;color:#475569;margin-top:2px;">{escape(f.description)}</div>
        <div style="font-size:11px;color:{sev_color};margin-top:4px;">{escape(f.severity)}</div>
      </div>"""
        hidden = len(report.findings) - MAX_REPORT_FINDINGS
        if hidden > 0:
            findings_html += f'\n      <div style="color:#64748b;font-size:12px;">+ {hidden} autres</div>'
    else:
        findings_html = (
            '<div style="color:#10b981;padding:12px;text-align:center;">'
            '&#10003; Aucun problème détecté</div>'
        )

    stats_rows = ""
    if stats is not None:
        for label, value in (
            ("Fichiers nettoyés", stats.files_cleaned),
            ("Fichiers supprimés", stats.files_removed),
            ("Fichiers vérifiés", stats.files_verified),
            ("Fichiers protégés", stats.files_protected),
            ("Paquets supprimés", stats.packages_removed),
            ("Polyfills générés", stats.polyfills_generated),
        ):
            stats_rows += f"<tr><td>{label}</td><td>{value}</td></tr>\n"

    score_pct = max(0, min(100, score))
    safe_name = escape(project_name)
    safe_date = escape((generated_at or datetime.now(timezone.utc).isoformat())[:19].replace("T", " "))
    baseline = "" if report.baseline_score is None else (
        f'<div style="font-size:12px;color:#64748b;">Score avant nettoyage: {report.baseline_score}</div>'
    )

    return f"""<!DOCTYPE html>
<html lang="fr">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Rapport de libération - {safe_name}</title>
<style>
  *{{margin:0;padding:0;box-sizing:border-box;}}
  body{{font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',sans-serif;
    background:#f1f5f9;color:#0f172a;padding:40px 20px;}}
  .report{{max-width:760px;margin:0 auto;background:#fff;border-radius:12px;
    box-shadow:0 1px 3px rgba(0,0,0,0.08);overflow:hidden;}}
  .header{{padding:28px 32px;border-bottom:1px solid #e2e8f0;}}
  .header h1{{font-size:22px;font-weight:700;}}
  .body{{padding:24px 32px;}}
  .section{{margin-bottom:24px;}}
  .section-title{{font-size:11px;font-weight:600;letter-spacing:2px;
    text-transform:uppercase;color:#64748b;margin-bottom:10px;}}
  .gauge{{height:12px;background:#e2e8f0;border-radius:6px;overflow:hidden;}}
  .gauge div{{height:100%;background:{status_color};width:{score_pct}%;}}
  table{{width:100%;border-collapse:collapse;font-size:14px;}}
  td{{padding:6px 0;border-bottom:1px solid #f1f5f9;}}
  td:last-child{{text-align:right;font-weight:600;}}
</style>
</head>
<body>
<div class="report">
  <div class="header">
    <h1>{safe_name}</h1>
    <div style="font-size:13px;color:#64748b;margin-top:4px;">Généré le {safe_date} UTC</div>
  </div>
  <div class="body">
    <div class="section">
      <div class="section-title">Score de souveraineté</div>
      <div style="font-size:36px;font-weight:700;color:{status_color};">{score}/100
        <span style="font-size:18px;">({escape(report.grade)})</span></div>
      <div style="font-size:14px;margin:6px 0 10px;">{status_text}</div>
      <div class="gauge"><div></div></div>
      {baseline}
    </div>
    <div class="section">
      <div class="section-title">Problèmes</div>
      <table>
        <tr><td>Critiques</td><td>{counts[CRITICAL]}</td></tr>
        <tr><td>Majeurs</td><td>{counts[MAJOR]}</td></tr>
        <tr><td>Mineurs</td><td>{counts[MINOR]}</td></tr>
      </table>
    </div>
    <div class="section">
      <div class="section-title">Statistiques</div>
      <table>
        {stats_rows}
      </table>
    </div>
    <div class="section">
      <div class="section-title">Détails ({len(report.findings)})</div>
      {findings_html}
    </div>
  </div>
</div>
</body>
</html>"""
