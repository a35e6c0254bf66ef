"""
API endpoint tests.

Tests:
  - Health and pattern catalog endpoints
  - /clean end to end, input limits, validation errors
  - /score, /polyfills, /manifest
  - /assist with a mock LLM provider
  - Version and security headers
"""

import json

import pytest
from fastapi.testclient import TestClient

from inopay.config import settings
from inopay.llm import LLMProvider
from inopay.patterns import CATALOG_VERSION, COMPAT_DIR


PACKAGE_JSON = json.dumps({"dependencies": {"react": "^18.3.1", "lovable-tagger": "^1.1.7"}}, indent=2)
NAV = "import { useIsMobile } from '@lovable/hooks';\nexport const Nav = () => useIsMobile();\n"


class MockLLM(LLMProvider):
    async def generate(self, prompt, system_instruction=None, temperature=0.2, json_mode=False):
        return json.dumps({"cleaned": "track('x');\n", "changes_made": ["import supprimé"]})


@pytest.fixture(scope="module")
def client():
    from api.main import app
    with TestClient(app) as c:
        yield c


# ============================================================
# METADATA
# ============================================================

class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "operational"
        assert data["version"] == settings.ENGINE_VERSION
        assert data["catalog_version"] == CATALOG_VERSION
        assert "hits" in data["cache"]

    def test_version_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Inopay-Version"] == settings.ENGINE_VERSION
        assert response.headers["X-Catalog-Version"] == CATALOG_VERSION
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_patterns(self, client):
        data = client.get("/patterns").json()
        assert data["version"] == CATALOG_VERSION
        assert "lovable-tagger" in data["suspicious_packages"]


# ============================================================
# CLEAN
# ============================================================

class TestClean:

    def test_clean_project(self, client):
        response = client.post("/clean", json={
            "files": {"package.json": PACKAGE_JSON, "src/Nav.tsx": NAV, ".lovable/x.json": "{}"},
        })
        assert response.status_code == 200
        data = response.json()
        assert "lovable-tagger" not in data["cleaned"]["package.json"]
        assert ".lovable/x.json" not in data["cleaned"]
        assert f"{COMPAT_DIR}/use-mobile.ts" in data["cleaned"]
        assert data["stats"]["packages_removed"] == 1
        assert data["stats"]["files_removed"] == 1
        assert data["polyfills"] == ["use-mobile"]
        assert data["state"] == "scored"
        assert data["report"]["score"] == 100

    def test_files_to_remove(self, client):
        response = client.post("/clean", json={
            "files": {"docs/old.ts": "export {}", "src/a.ts": "export {}"},
            "files_to_remove": ["docs/old.ts"],
        })
        assert list(response.json()["cleaned"]) == ["src/a.ts"]

    def test_missing_files_is_422(self, client):
        assert client.post("/clean", json={}).status_code == 422

    def test_too_many_files_is_413(self, client):
        files = {f"src/f{i}.ts": "" for i in range(settings.MAX_FILES + 1)}
        assert client.post("/clean", json={"files": files}).status_code == 413

    def test_file_too_large_is_413(self, client):
        files = {"src/big.ts": "x" * (settings.MAX_FILE_SIZE_CHARS + 1)}
        response = client.post("/clean", json={"files": files})
        assert response.status_code == 413
        assert "src/big.ts" in response.json()["detail"]


# ============================================================
# SCORE / POLYFILLS / MANIFEST
# ============================================================

class TestScoring:

    def test_score(self, client):
        response = client.post("/score", json={
            "cleaned": {"src/a.ts": 'fetch("https://events.lovable.dev");\n'},
            "original": {"src/a.ts": "import x from '@lovable/x';\n"},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 92
        assert data["baseline_score"] == 85
        assert data["major_issues"] == 1

    def test_polyfills(self, client):
        response = client.post("/polyfills", json={"cleaned": {"src/App.tsx": "useToast();\n"}})
        data = response.json()
        assert data["hooks"] == ["use-toast"]
        assert f"{COMPAT_DIR}/use-toast.ts" in data["generated"]

    def test_manifest_with_report(self, client):
        response = client.post("/manifest", json={
            "project_name": "demo",
            "cleaned": {"src/a.ts": "export {}\n"},
            "include_report": True,
        })
        data = response.json()
        assert data["manifest"]["audit_score"] == 100
        assert data["manifest"]["files"][0]["path"] == "src/a.ts"
        assert data["report_html"].startswith("<!DOCTYPE html>")

    def test_manifest_without_report(self, client):
        response = client.post("/manifest", json={"project_name": "demo", "cleaned": {}})
        assert response.json()["report_html"] is None


# ============================================================
# ASSIST
# ============================================================

class TestAssist:

    def test_assist_with_mock_llm(self, client, monkeypatch):
        import api.main as main
        monkeypatch.setattr(main, "_llm", MockLLM())
        response = client.post("/assist", json={
            "path": "src/a.ts",
            "content": "import { track } from '@lovable/analytics';\ntrack('x');\n",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["accepted"] is True
        assert data["cleaned"] == "track('x');\n"

    def test_assist_below_threshold(self, client, monkeypatch):
        import api.main as main
        monkeypatch.setattr(main, "_llm", MockLLM())
        response = client.post("/assist", json={"path": "src/a.ts", "content": "export {}\n"})
        assert response.json()["triggered"] is False

    def test_assist_oversized_content_is_413(self, client, monkeypatch):
        import api.main as main
        llm = MockLLM()
        monkeypatch.setattr(main, "_llm", llm)
        content = "x" * (settings.MAX_FILE_SIZE_CHARS + 1)
        response = client.post("/assist", json={"path": "src/big.ts", "content": content})
        assert response.status_code == 413
        assert "src/big.ts" in response.json()["detail"]
