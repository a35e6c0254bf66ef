"""
Tests for the Pipeline Orchestrator.

Tests:
  - End-to-end liberation of a typical exported project
  - package.json, imports, protection, polyfills, telemetry scenarios
  - Verification runs at most once and can fix what the first pass missed
  - Idempotence: cleaning a cleaned set changes nothing
  - Removed files are absent, protected files are byte-identical
  - Thread pool and cache produce the same output as a sequential run
  - Edge function and SQL extraction, stats and JSON shape
"""

import json

from inopay.cache import CleaningCache
from inopay.patterns import CATALOG_VERSION, COMPAT_DIR
from inopay.pipeline import (
    STATE_SCORED,
    STATE_VERIFICATION,
    _syntax_regressions,
    clean,
    extract_edge_functions,
    extract_sql_schema,
)
from inopay.polyfills import BARREL_PATH
from inopay.rewriters import CleaningResult


PACKAGE_JSON = json.dumps({
    "name": "demo",
    "private": True,
    "scripts": {"dev": "vite", "build": "vite build"},
    "dependencies": {"react": "^18.3.1", "lovable-tagger": "^1.1.7"},
    "devDependencies": {"vite": "^5.4.1"},
}, indent=2) + "\n"

VITE_CONFIG = """import { defineConfig } from "vite";
import react from "@vitejs/plugin-react-swc";
import { componentTagger } from "lovable-tagger";

export default defineConfig(({ mode }) => ({
  plugins: [
    react(),
    mode === 'development' &&
    componentTagger(),
  ].filter(Boolean),
}));
"""

INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="author" content="Lovable" />
  </head>
  <body>
    <div id="root"></div>
    <script src="https://cdn.gpteng.co/gptengineer.js" type="module"></script>
    <script type="module" src="/src/main.tsx"></script>
  </body>
</html>
"""

APP = """import React from 'react';
import { componentTagger } from 'lovable-tagger';
import { Nav } from './components/Nav';

export default function App() {
  return <Nav />;
}
"""

NAV = """import { useIsMobile } from '@lovable/hooks';

export function Nav() {
  const isMobile = useIsMobile();
  return isMobile ? null : null;
}
"""

PROTECTED = "// @inopay-core-protected\n" + "".join(
    f"import x{i} from '@lovable/mod{i}';\n" for i in range(10)
)


def _project():
    return {
        "package.json": PACKAGE_JSON,
        "vite.config.ts": VITE_CONFIG,
        "index.html": INDEX_HTML,
        "src/App.tsx": APP,
        "src/components/Nav.tsx": NAV,
        "src/main.tsx": "import App from './App';\nconst key = import.meta.env.VITE_SUPABASE_URL;\n",
        ".lovable/project.json": '{"id": "abc"}',
        "public/favicon.ico": "",
    }


# ============================================================
# SCENARIOS
# ============================================================

class TestScenarios:
    """Behaviour on the canonical liberation cases."""

    def test_package_json_dependency_removed(self):
        result = clean({"package.json": PACKAGE_JSON})
        assert "lovable-tagger" not in json.loads(result.cleaned["package.json"])["dependencies"]
        assert result.stats.packages_removed == 1
        assert "Dépendance supprimée: lovable-tagger" in result.results[0].changes

    def test_import_removed_rest_unchanged(self):
        result = clean({"src/App.tsx": APP})
        assert result.cleaned["src/App.tsx"] == APP.replace(
            "import { componentTagger } from 'lovable-tagger';\n", ""
        )
        assert result.stats.files_cleaned == 1

    def test_protected_file_untouched(self):
        result = clean({"src/core.ts": PROTECTED})
        assert result.cleaned["src/core.ts"] == PROTECTED
        assert len(result.results[0].changes) == 1
        assert result.stats.files_protected == 1
        assert result.stats.files_cleaned == 0
        assert result.stats.sovereignty_score == 100

    def test_hook_polyfilled_after_import_removal(self):
        result = clean({"src/components/Nav.tsx": NAV})
        assert "@lovable/hooks" not in result.cleaned["src/components/Nav.tsx"]
        assert f"{COMPAT_DIR}/use-mobile.ts" in result.cleaned
        assert "export * from './use-mobile';" in result.cleaned[BARREL_PATH]
        assert f"{COMPAT_DIR}/use-toast.ts" not in result.cleaned
        assert result.stats.polyfills_generated == 1
        assert result.polyfills.hooks == ("use-mobile",)

    def test_empty_project(self):
        result = clean({})
        assert result.cleaned == {}
        assert result.results == []
        stats = result.stats
        assert (stats.files_removed, stats.files_cleaned, stats.files_protected) == (0, 0, 0)
        assert (stats.packages_removed, stats.polyfills_generated, stats.files_rechecked) == (0, 0, 0)
        assert (stats.critical_issues, stats.major_issues, stats.minor_issues) == (0, 0, 0)
        assert stats.suspicious_patterns == ()
        assert stats.syntax_errors == ()
        assert stats.sovereignty_score == 100
        assert result.state == STATE_SCORED

    def test_multiline_vendor_global_removed_whole(self):
        content = "window.__lovable = {\n  projectId: 'abc',\n};\nexport const a = 1;\n"
        result = clean({"src/main.ts": content})
        assert result.cleaned["src/main.ts"] == "export const a = 1;\n"
        assert result.stats.syntax_errors == ()
        assert result.stats.sovereignty_score == 100

    def test_bare_require_of_vendor_package_removed(self):
        result = clean({"src/a.ts": "require('cursor-runtime');\nexport const a = 1;\n"})
        assert result.cleaned["src/a.ts"] == "export const a = 1;\n"
        assert result.stats.sovereignty_score == 100

    def test_unfixable_finding_reported_after_one_verification(self):
        files = {"src/a.ts": "const plugin = lovablePlugin();\n"}
        result = clean(files)
        assert result.cleaned == files
        assert result.states.count(STATE_VERIFICATION) == 1
        assert result.state == STATE_SCORED
        assert result.stats.sovereignty_score == 92
        assert result.stats.files_rechecked == 0
        assert result.stats.suspicious_patterns == ("src/a.ts: plugin Lovable caché",)

    def test_verification_cleans_residual_telemetry(self):
        files = {"vite.config.ts": 'export default { define: { endpoint: "https://events.lovable.dev" } };\n'}
        result = clean(files)
        assert result.cleaned["vite.config.ts"] == 'export default { define: { endpoint: "" } };\n'
        assert result.stats.files_rechecked == 1
        assert result.stats.sovereignty_score == 100
        assert "Télémétrie supprimée: lovable.dev" in result.results[0].changes
        assert result.stats.files_cleaned == 1

    def test_verification_can_be_disabled(self):
        files = {"vite.config.ts": 'export default { define: { endpoint: "https://events.lovable.dev" } };\n'}
        result = clean(files, verify=False)
        assert STATE_VERIFICATION not in result.states
        assert result.cleaned == files
        assert result.stats.sovereignty_score == 92

    def test_no_verification_when_clean(self):
        result = clean({"src/a.ts": "export const a = 1;\n"})
        assert result.states == ("filtering", "cleaning", "polyfill_generation", "scored")


# ============================================================
# WHOLE PROJECT
# ============================================================

class TestProject:
    """A typical exported project end to end."""

    def test_full_liberation(self):
        result = clean(_project())
        cleaned = result.cleaned
        assert ".lovable/project.json" not in cleaned
        assert "public/favicon.ico" in cleaned
        assert "componentTagger" not in cleaned["vite.config.ts"]
        assert "gptengineer" not in cleaned["index.html"]
        assert f"{COMPAT_DIR}/use-mobile.ts" in cleaned
        assert result.stats.files_removed == 1
        assert result.stats.sovereignty_score == 100
        assert result.report.baseline_score < 100
        assert result.stats.syntax_errors == ()
        assert result.stats.catalog_version == CATALOG_VERSION

    def test_idempotent(self):
        first = clean(_project())
        second = clean(first.cleaned)
        assert second.cleaned == first.cleaned
        assert second.stats.files_cleaned == 0
        assert second.stats.polyfills_generated == 0

    def test_removal_hints(self):
        files = {**_project(), "docs/legacy.ts": "export {}"}
        result = clean(files, previously_flagged=["docs/legacy.ts"])
        assert "docs/legacy.ts" not in result.cleaned
        assert ".lovable/project.json" not in result.cleaned
        assert result.stats.files_removed == 2

    def test_protected_files_byte_identical(self):
        files = {**_project(), "src/core.ts": PROTECTED, "src/i18n/fr.ts": "// lovable.dev\n"}
        result = clean(files)
        assert result.cleaned["src/core.ts"] == PROTECTED
        assert result.cleaned["src/i18n/fr.ts"] == "// lovable.dev\n"
        assert result.stats.files_protected == 2

    def test_worker_pool_matches_sequential(self):
        sequential = clean(_project())
        pooled = clean(_project(), workers=4)
        assert pooled.cleaned == sequential.cleaned
        assert pooled.stats == sequential.stats

    def test_cache_matches_fresh_run(self):
        cache = CleaningCache()
        first = clean(_project(), cache=cache)
        second = clean(_project(), cache=cache)
        assert second.cleaned == first.cleaned
        assert cache.stats["hits"] == len(_project())

    def test_cache_separates_removal_hints(self):
        cache = CleaningCache()
        clean({"docs/legacy.ts": "export {}"}, cache=cache)
        result = clean({"docs/legacy.ts": "export {}"}, ["docs/legacy.ts"], cache=cache)
        assert result.cleaned == {}

    def test_env_example(self):
        result = clean(_project())
        assert "VITE_SUPABASE_URL=" in result.env_example

    def test_to_dict_is_json_serializable(self):
        data = clean(_project()).to_dict()
        decoded = json.loads(json.dumps(data))
        assert decoded["state"] == "scored"
        assert decoded["stats"]["files_removed"] == 1
        assert decoded["polyfills"] == ["use-mobile"]
        assert {f["path"] for f in decoded["files"]} == set(_project())


# ============================================================
# EXTRACTION AND CHECKS
# ============================================================

class TestExtraction:

    FILES = {
        "supabase/functions/hello/index.ts": "export default 1;\n",
        "supabase/functions/_shared/index.ts": "export const cors = {};\n",
        "supabase/functions/hello/utils.ts": "export {}\n",
        "supabase/migrations/002_b.sql": "create table b();",
        "supabase/migrations/001_a.sql": "create table a();",
    }

    def test_edge_functions(self):
        assert extract_edge_functions(self.FILES) == {"hello": "export default 1;\n"}

    def test_sql_schema_in_path_order(self):
        assert extract_sql_schema(self.FILES) == "create table a();\n\ncreate table b();"

    def test_edge_functions_stay_in_cleaned(self):
        result = clean(self.FILES)
        assert "supabase/functions/hello/index.ts" in result.cleaned
        assert result.edge_functions == {"hello": "export default 1;\n"}

    def test_syntax_regression_reported(self):
        broken = CleaningResult("src/a.ts", "const a = {};\n", "const a = {;\n")
        untouched = CleaningResult("src/b.ts", "const b = {;\n", "const b = {;;\n")
        errors = _syntax_regressions([broken, untouched])
        assert len(errors) == 1
        assert errors[0].startswith("src/a.ts: ")
