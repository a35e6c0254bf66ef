"""
Tests for the sovereignty manifest and the HTML liberation report.

Tests:
  - Per-file hashes, sorted, and a timestamp-independent checksum
  - Manifest verification catches changed, missing and extra files
  - Report escapes user input and caps the findings list
"""

import hashlib

from inopay.manifest import (
    MAX_REPORT_FINDINGS,
    build_manifest,
    file_hash,
    generate_report_html,
    verify_manifest,
)
from inopay.patterns import CATALOG_VERSION
from inopay.pipeline import clean
from inopay.scorer import score_sovereignty


FILES = {
    "src/main.tsx": "import App from './App';\n",
    "package.json": '{"name": "demo"}\n',
    "src/App.tsx": "export default function App() { return null }\n",
}


# ============================================================
# MANIFEST
# ============================================================

class TestManifest:

    def test_fields(self):
        report = score_sovereignty(None, FILES)
        manifest = build_manifest("demo", FILES, report, generated_at="2026-01-01T00:00:00+00:00")
        assert manifest["project_name"] == "demo"
        assert manifest["audit_score"] == 100
        assert manifest["sovereignty_grade"] == "A+"
        assert manifest["catalog_version"] == CATALOG_VERSION
        assert manifest["generated_at"] == "2026-01-01T00:00:00+00:00"
        assert "stats" not in manifest

    def test_files_sorted_with_sha256(self):
        manifest = build_manifest("demo", FILES, score_sovereignty(None, FILES))
        assert [f["path"] for f in manifest["files"]] == sorted(FILES)
        expected = hashlib.sha256(FILES["package.json"].encode("utf-8")).hexdigest()
        assert manifest["files"][0] == {"path": "package.json", "hash": expected}
        assert file_hash(FILES["package.json"]) == expected

    def test_checksum_ignores_timestamp(self):
        report = score_sovereignty(None, FILES)
        first = build_manifest("demo", FILES, report, generated_at="2026-01-01")
        second = build_manifest("demo", FILES, report, generated_at="2026-06-01")
        assert first["checksum"] == second["checksum"]

    def test_checksum_tracks_content(self):
        report = score_sovereignty(None, FILES)
        changed = {**FILES, "src/App.tsx": "export default 1;\n"}
        assert build_manifest("demo", FILES, report)["checksum"] != build_manifest("demo", changed, report)["checksum"]

    def test_includes_stats(self):
        result = clean(FILES)
        manifest = build_manifest("demo", result.cleaned, result.report, result.stats)
        assert manifest["stats"]["sovereignty_score"] == 100

    def test_verify_clean_tree(self):
        manifest = build_manifest("demo", FILES, score_sovereignty(None, FILES))
        assert verify_manifest(manifest, FILES) == []

    def test_verify_detects_changes(self):
        manifest = build_manifest("demo", FILES, score_sovereignty(None, FILES))
        tampered = {k: v for k, v in FILES.items() if k != "src/main.tsx"}
        tampered["src/App.tsx"] = "export default 2;\n"
        tampered["src/extra.ts"] = "export {}\n"
        assert verify_manifest(manifest, tampered) == ["src/App.tsx", "src/extra.ts", "src/main.tsx"]


# ============================================================
# HTML REPORT
# ============================================================

class TestReport:

    def test_clean_report(self):
        html = generate_report_html("demo", score_sovereignty(None, FILES))
        assert html.startswith("<!DOCTYPE html>")
        assert "Code souverain" in html
        assert "Aucun problème détecté" in html

    def test_project_name_escaped(self):
        html = generate_report_html("<script>alert(1)</script>", score_sovereignty(None, FILES))
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html

    def test_findings_capped(self):
        files = {f"src/f{i:02d}.ts": "// @lovable marker\n" for i in range(60)}
        report = score_sovereignty(None, files)
        html = generate_report_html("demo", report)
        assert html.count("src/f") == MAX_REPORT_FINDINGS
        assert "+ 10 autres" in html
        assert "Dépendances propriétaires restantes" in html

    def test_stats_rows(self):
        result = clean({"package.json": '{"dependencies": {"lovable-tagger": "1"}}'})
        html = generate_report_html("demo", result.report, result.stats)
        assert "<tr><td>Paquets supprimés</td><td>1</td></tr>" in html
