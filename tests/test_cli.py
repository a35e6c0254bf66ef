"""
Tests for the command-line interface.

Tests:
  - Project loading from a directory and a zip archive
  - scan: text and JSON output, exit status against --min-score
  - liberate: cleaned tree, manifest, report, .env.example, zip
  - Unreadable input exits with status 2
"""

import json
import zipfile

import pytest

from inopay.cli import MANIFEST_FILE, REPORT_FILE, build_parser, load_project, main, write_project
from inopay.config import settings


PACKAGE_JSON = json.dumps({"dependencies": {"react": "^18.3.1", "lovable-tagger": "^1.1.7"}}, indent=2) + "\n"
APP = "import { componentTagger } from 'lovable-tagger';\nexport default function App() { return null }\n"


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "my-app"
    (root / "src").mkdir(parents=True)
    (root / ".lovable").mkdir()
    (root / "node_modules" / "react").mkdir(parents=True)
    (root / "package.json").write_text(PACKAGE_JSON, encoding="utf-8")
    (root / "src" / "App.tsx").write_text(APP, encoding="utf-8")
    (root / ".lovable" / "project.json").write_text("{}", encoding="utf-8")
    (root / "node_modules" / "react" / "index.js").write_text("module.exports = {}", encoding="utf-8")
    (root / "logo.png").write_bytes(b"\x89PNG\x00\x00")
    return root


# ============================================================
# LOADING
# ============================================================

class TestLoading:

    def test_directory(self, project):
        files = load_project(project)
        assert set(files) == {"package.json", "src/App.tsx", ".lovable/project.json"}

    def test_zip_with_common_root(self, tmp_path, project):
        archive = tmp_path / "export.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("my-app-main/package.json", PACKAGE_JSON)
            zf.writestr("my-app-main/src/App.tsx", APP)
        assert set(load_project(archive)) == {"package.json", "src/App.tsx"}

    def test_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_project(tmp_path / "nope")

    def test_write_refuses_escaping_paths(self, tmp_path):
        out = tmp_path / "out"
        written = write_project(out, {"src/a.ts": "a", "../evil.ts": "b"})
        assert written == 1
        assert (out / "src" / "a.ts").read_text(encoding="utf-8") == "a"
        assert not (tmp_path / "evil.ts").exists()


# ============================================================
# COMMANDS
# ============================================================

class TestScan:

    def test_scan_text(self, project, capsys):
        code = main(["scan", str(project)])
        out = capsys.readouterr().out
        assert code == 1
        assert "Sovereignty score:" in out
        assert "CRITICAL" in out

    def test_scan_json(self, project, capsys):
        code = main(["scan", str(project), "--json", "--min-score", "0"])
        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["files"] == 3
        assert data["critical_issues"] >= 2


class TestLiberate:

    def test_liberate_writes_tree(self, project, tmp_path, capsys):
        out = tmp_path / "liberated"
        code = main(["liberate", str(project), "--out", str(out)])
        assert code == 0
        assert "lovable-tagger" not in (out / "package.json").read_text(encoding="utf-8")
        assert "lovable-tagger" not in (out / "src" / "App.tsx").read_text(encoding="utf-8")
        assert not (out / ".lovable").exists()
        assert (out / ".env.example").exists()
        assert (out / REPORT_FILE).exists()
        manifest = json.loads((out / MANIFEST_FILE).read_text(encoding="utf-8"))
        assert manifest["project_name"] == "my-app"
        assert manifest["audit_score"] == 100
        assert "Liberated 3 files" in capsys.readouterr().out

    def test_liberate_zip_and_json(self, project, tmp_path, capsys):
        out = tmp_path / "liberated"
        code = main(["liberate", str(project), "--out", str(out), "--zip", "--json", "--name", "demo"])
        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert "cleaned" not in data
        assert data["archive"] == str(tmp_path / "liberated.zip")
        with zipfile.ZipFile(tmp_path / "liberated.zip") as zf:
            assert MANIFEST_FILE in zf.namelist()

    def test_unreadable_input(self, tmp_path, capsys):
        code = main(["scan", str(tmp_path / "missing")])
        assert code == 2
        assert "Error:" in capsys.readouterr().err


class TestParser:

    def test_serve_defaults_from_settings(self):
        args = build_parser().parse_args(["serve"])
        assert args.host == settings.HOST
        assert args.port == settings.PORT

    def test_liberate_requires_out(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["liberate", "project"])
