"""
Tests for the Polyfill Synthesizer.

Tests:
  - A hook imported from a vendor package before cleaning is polyfilled
  - A hook with no resolving import or local definition is polyfilled
  - Hooks that resolve locally, or are unused, are not
  - Barrel file contents and catalog ordering
  - A second pass over already-polyfilled output adds nothing
"""

from inopay.patterns import COMPAT_DIR, HOOK_POLYFILLS
from inopay.polyfills import BARREL_PATH, build_barrel, detect_needed_hooks, synthesize_polyfills


NAV_ORIGINAL = """import { useIsMobile } from '@lovable/hooks';

export function Nav() {
  const isMobile = useIsMobile();
  return isMobile ? null : null;
}
"""

NAV_CLEANED = """
export function Nav() {
  const isMobile = useIsMobile();
  return isMobile ? null : null;
}
"""


# ============================================================
# DETECTION
# ============================================================

class TestDetection:
    """Which hooks the cleaned project still needs."""

    def test_vendor_import_before_cleaning(self):
        original = {"src/components/Nav.tsx": NAV_ORIGINAL}
        cleaned = {"src/components/Nav.tsx": NAV_CLEANED}
        assert detect_needed_hooks(cleaned, original) == ["use-mobile"]

    def test_unresolved_import(self):
        cleaned = {"src/App.tsx": "import { useToast } from '@/hooks/use-toast';\nuseToast();\n"}
        assert detect_needed_hooks(cleaned) == ["use-toast"]

    def test_bare_usage_without_import(self):
        assert detect_needed_hooks({"src/App.tsx": "const t = useToast();\n"}) == ["use-toast"]

    def test_locally_resolved_hook_not_needed(self):
        cleaned = {
            "src/hooks/use-mobile.tsx": "export function useIsMobile() { return false }\n",
            "src/App.tsx": "import { useIsMobile } from '@/hooks/use-mobile';\nconst m = useIsMobile();\n",
        }
        assert detect_needed_hooks(cleaned) == []

    def test_relative_import_resolves(self):
        cleaned = {
            "src/hooks/use-toast.ts": "export const useToast = () => ({});\n",
            "src/components/Form.tsx": "import { useToast } from '../hooks/use-toast';\nuseToast();\n",
        }
        assert detect_needed_hooks(cleaned) == []

    def test_package_import_resolves(self):
        cleaned = {"src/App.tsx": "import { useSidebar } from 'some-ui-kit';\nuseSidebar();\n"}
        assert detect_needed_hooks(cleaned) == []

    def test_unused_hooks_not_needed(self):
        assert detect_needed_hooks({"src/App.tsx": "export default function App() {}\n"}) == []

    def test_non_source_files_ignored(self):
        assert detect_needed_hooks({"README.md": "Call useToast() to notify."}) == []

    def test_catalog_order(self):
        cleaned = {"src/App.tsx": "useToast();\nuseSidebar();\nuseIsMobile();\n"}
        assert detect_needed_hooks(cleaned) == ["use-mobile", "use-toast", "use-sidebar"]


# ============================================================
# SYNTHESIS
# ============================================================

class TestSynthesis:
    """Generated compatibility files."""

    def test_generates_hook_and_barrel(self):
        bundle = synthesize_polyfills(
            {"src/components/Nav.tsx": NAV_CLEANED},
            {"src/components/Nav.tsx": NAV_ORIGINAL},
        )
        assert bundle.hooks == ("use-mobile",)
        assert set(bundle.generated) == {f"{COMPAT_DIR}/use-mobile.ts", BARREL_PATH}
        assert bundle.generated[f"{COMPAT_DIR}/use-mobile.ts"] == HOOK_POLYFILLS["use-mobile"].source_code
        assert bundle.count == 1

    def test_barrel_contents(self):
        assert build_barrel(["use-mobile"]) == (
            "// Inopay Compatibility Layer\n"
            "// Auto-generated polyfills for sovereign code\n"
            "export * from './use-mobile';\n"
        )

    def test_nothing_needed_nothing_generated(self):
        bundle = synthesize_polyfills({"src/App.tsx": "export {}\n"})
        assert bundle.generated == {}
        assert bundle.hooks == ()
        assert bundle.count == 0

    def test_second_pass_adds_nothing(self):
        first = synthesize_polyfills({"src/Nav.tsx": "const m = useIsMobile();\n"})
        cleaned = {"src/Nav.tsx": "const m = useIsMobile();\n", **first.generated}
        second = synthesize_polyfills(cleaned)
        assert second.hooks == ("use-mobile",)
        assert second.generated == {}

    def test_compat_files_are_not_consumers(self):
        cleaned = {f"{COMPAT_DIR}/use-toast.ts": HOOK_POLYFILLS["use-toast"].source_code}
        assert synthesize_polyfills(cleaned).hooks == ()
