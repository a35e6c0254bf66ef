"""
Polyfill Synthesizer

Once vendor imports are stripped, call sites of the hooks those packages
supplied (useIsMobile, useToast, useSidebar) are left dangling. This
module decides which hooks the cleaned project still needs and emits a
standalone implementation for each under ``src/lib/inopay-compat/``,
plus an ``index.ts`` barrel re-exporting them.

A hook is needed when a cleaned source file uses it AND either:
  - the same file, before cleaning, imported it from a vendor package, or
  - the file has no import or local definition that resolves it.

Emitting a polyfill for an unused hook is as much a defect as
forgetting a used one.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from inopay.patterns import COMPAT_DIR, HOOK_POLYFILLS, IMPORT_PATTERNS, PolyfillDefinition
from inopay.rewriters import SOURCE_EXTENSIONS

BARREL_PATH = f"{COMPAT_DIR}/index.ts"

_IMPORT_STATEMENT = re.compile(
    r"^[ \t]*import\s+([\w*${}\s,]+?)\s*from\s*['\"]([^'\"]+)['\"]",
    re.MULTILINE,
)
_RESOLVE_SUFFIXES = ("", ".ts", ".tsx", ".js", ".jsx", "/index.ts", "/index.tsx", "/index.js")


@dataclass(frozen=True)
class PolyfillBundle:
    """
    Files to add to the cleaned set.

    ``hooks`` lists every needed hook; ``generated`` only holds files whose
    content is not already present, so a second pass adds nothing.
    """
    generated: dict[str, str] = field(default_factory=dict)
    hooks: tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return sum(1 for path in self.generated if path != BARREL_PATH)


def _identifier_regex(hook: PolyfillDefinition) -> re.Pattern:
    names = "|".join(re.escape(i) for i in hook.identifiers)
    return re.compile(r"\b(?:" + names + r")\b")


_HOOK_USAGE = {name: _identifier_regex(hook) for name, hook in HOOK_POLYFILLS.items()}


def _is_consumer(path: str) -> bool:
    return path.lower().endswith(SOURCE_EXTENSIONS) and not path.startswith(COMPAT_DIR + "/")


def _had_vendor_import(hook: PolyfillDefinition, content: str) -> bool:
    """True if a vendor import statement in ``content`` brought in the hook."""
    usage = _HOOK_USAGE[hook.hook_name]
    for pattern in IMPORT_PATTERNS:
        for match in pattern.regex.finditer(content):
            statement = match.group(0)
            if usage.search(statement) or hook.module_name in statement:
                return True
    return False


def _resolves(specifier: str, importer: str, files: Mapping[str, str]) -> bool:
    if specifier.startswith("@/"):
        base = "src/" + specifier[2:]
    elif specifier.startswith("."):
        base = posixpath.normpath(posixpath.join(posixpath.dirname(importer), specifier))
    else:
        # Package import: whatever npm installs is outside the cleaned set
        return True
    return any(base + suffix in files for suffix in _RESOLVE_SUFFIXES)


def _is_unresolved(
    hook: PolyfillDefinition,
    path: str,
    content: str,
    files: Mapping[str, str],
) -> bool:
    usage = _HOOK_USAGE[hook.hook_name]
    for match in _IMPORT_STATEMENT.finditer(content):
        clause, specifier = match.group(1), match.group(2)
        if usage.search(clause):
            return not _resolves(specifier, path, files)

    names = "|".join(re.escape(i) for i in hook.identifiers)
    defined = re.search(
        r"\b(?:function|const|let|var|class)\s+(?:" + names + r")\b", content
    )
    return defined is None


def detect_needed_hooks(
    cleaned: Mapping[str, str],
    original: Optional[Mapping[str, str]] = None,
) -> list[str]:
    """Hook names (catalog order) the cleaned project needs polyfilled."""
    needed = []
    for name, hook in HOOK_POLYFILLS.items():
        usage = _HOOK_USAGE[name]
        for path, content in cleaned.items():
            if not _is_consumer(path) or not usage.search(content):
                continue
            before = original.get(path) if original else None
            if (before is not None and _had_vendor_import(hook, before)) or _is_unresolved(
                hook, path, content, cleaned
            ):
                needed.append(name)
                break
    return needed


def build_barrel(hooks: list[str]) -> str:
    exports = "\n".join(
        f"export * from './{HOOK_POLYFILLS[name].module_name}';" for name in hooks
    )
    return (
        "// Inopay Compatibility Layer\n"
        "// Auto-generated polyfills for sovereign code\n"
        f"{exports}\n"
    )


def synthesize_polyfills(
    cleaned: Mapping[str, str],
    original: Optional[Mapping[str, str]] = None,
) -> PolyfillBundle:
    hooks = detect_needed_hooks(cleaned, original)
    if not hooks:
        return PolyfillBundle()

    files = {
        f"{COMPAT_DIR}/{HOOK_POLYFILLS[name].filename}": HOOK_POLYFILLS[name].source_code
        for name in hooks
    }
    files[BARREL_PATH] = build_barrel(hooks)

    generated = {path: src for path, src in files.items() if cleaned.get(path) != src}
    return PolyfillBundle(generated=generated, hooks=tuple(hooks))
