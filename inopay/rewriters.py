"""
File-Type Rewriters — Deterministic Proprietary Code Removal

One rewriter per file family. Each is a pure function
``(content, path) -> RewriteOutcome`` and never raises on malformed
input: JSON that does not parse, or a pattern that cannot be applied,
leaves the content as it was.

Dispatch order for a single file (see ``clean_file``):
  1. Protection Gate        -> returned unchanged, one audit entry
  2. Denylist / hint list   -> removed
  3. Filename-specific      -> package.json, vite.config.*, index.html, tsconfig*.json, .env*
  4. Generic by extension   -> .ts/.tsx/.js/.jsx, stylesheets, markdown, shell
  5. Anything else          -> pass-through

Change entries are user-facing (French, like the rest of the product UI).
Log messages are English.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Collection, Iterable, Mapping, Optional

from inopay.patterns import (
    ASSET_CDN_DOMAINS,
    CONTENT_PATTERNS,
    DEPENDENCY_KINDS,
    FILE_DENYLIST,
    HIDDEN_PLUGIN_PATTERNS,
    HTML_VENDOR_TERMS,
    IMPORT_PATTERNS,
    SCRIPT_VENDOR_TERMS,
    SUSPICIOUS_PACKAGES,
    TAGGER_CALL_PATTERNS,
    TAGGER_IMPORT,
    TELEMETRY_DOMAINS,
    VENDOR_SCOPES,
    RewritePattern,
)
from inopay.protection import protection_reason

logger = logging.getLogger(__name__)


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass(frozen=True)
class RewriteOutcome:
    """What a single rewriter produced."""
    cleaned: str
    changes: tuple[str, ...] = ()
    suspicious: tuple[str, ...] = ()
    packages_removed: int = 0


@dataclass(frozen=True)
class CleaningResult:
    """
    Immutable per-file record produced by the dispatcher.

    ``removed`` files have empty ``cleaned_content`` and must not appear
    in the cleaned output. ``protected`` files are byte-identical.
    """
    path: str
    original_content: str
    cleaned_content: str
    changes: tuple[str, ...] = ()
    removed: bool = False
    protected: bool = False
    suspicious: tuple[str, ...] = ()
    packages_removed: int = 0
    rewriter: Optional[str] = None
    failed: bool = False

    @property
    def modified(self) -> bool:
        return (
            not self.removed
            and not self.protected
            and self.cleaned_content != self.original_content
        )

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "changes": list(self.changes),
            "removed": self.removed,
            "protected": self.protected,
            "modified": self.modified,
            "suspicious": list(self.suspicious),
            "rewriter": self.rewriter,
        }


# ============================================================
# SHARED HELPERS
# ============================================================

SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
STYLESHEET_EXTENSIONS = (".css", ".scss", ".sass")
MARKDOWN_EXTENSIONS = (".md", ".mdx")
SHELL_EXTENSIONS = (".sh", ".bash")

_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")

def _literal_containing(domain: str) -> re.Pattern:
    """One single-line string literal per quote type; other quotes and escapes allowed inside."""
    alternatives = []
    for quote in "\"'`":
        body = r"(?:[^%s\\\n]|\\.)*" % quote
        alternatives.append(quote + body + re.escape(domain) + body + quote)
    return re.compile("|".join(alternatives), re.IGNORECASE)


_TELEMETRY_LITERALS: tuple[tuple[str, re.Pattern], ...] = tuple(
    (domain, _literal_containing(domain)) for domain in TELEMETRY_DOMAINS
)

_CDN_URLS: tuple[tuple[str, re.Pattern], ...] = tuple(
    (cdn, re.compile(r"https?://[^'\"\s)]*" + re.escape(cdn) + r"[^'\"\s)]*", re.IGNORECASE))
    for cdn in ASSET_CDN_DOMAINS
)

_VENDOR_WORDS = ("lovable", "gptengineer", "gpteng", "gpt-engineer") + VENDOR_SCOPES


def basename(path: str) -> str:
    return path.replace("\\", "/").rsplit("/", 1)[-1]


def _sub(pattern: re.Pattern, replacement: str, text: str) -> tuple[str, int]:
    """Apply one rule. A rule that cannot be applied is skipped, not fatal."""
    try:
        return pattern.subn(replacement, text)
    except (re.error, RecursionError) as e:
        logger.warning(
            "Pattern could not be applied; rule skipped",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        return text, 0


def _apply(patterns: Iterable[RewritePattern], text: str) -> tuple[str, list[RewritePattern]]:
    fired = []
    for pattern in patterns:
        text, count = _sub(pattern.regex, pattern.replacement, text)
        if count:
            fired.append(pattern)
    return text, fired


def _mentions_vendor(value: str) -> bool:
    lowered = value.lower()
    return any(word in lowered for word in _VENDOR_WORDS)


def _mentions_telemetry(value: str) -> bool:
    lowered = value.lower()
    return any(domain in lowered for domain in TELEMETRY_DOMAINS)


def finalize(content: str) -> str:
    """
    Whole-file cleanup after deletions.

    Collapses runs of 3+ newlines to a single blank line and drops
    trailing commas left in front of ``}`` or ``]``.
    """
    content = _EXCESS_NEWLINES.sub("\n\n", content)
    return _TRAILING_COMMA.sub(r"\1", content)


def _finish(original: str, cleaned: str, changes: list[str], **kwargs) -> RewriteOutcome:
    """Run the cleanup pass only when something was actually removed."""
    if cleaned == original:
        return RewriteOutcome(original, tuple(changes), **kwargs)
    return RewriteOutcome(finalize(cleaned), tuple(changes), **kwargs)


def is_suspicious_package(name: str) -> bool:
    return name in SUSPICIOUS_PACKAGES or name.startswith(VENDOR_SCOPES)


def is_denylisted(path: str) -> bool:
    """
    True if the path names a proprietary configuration file or directory.

    A denylist entry matches a whole path segment (``.lovable/x.json``,
    ``.replit``) or the start of the file name followed by a dot
    (``lovable.config`` matches ``lovable.config.ts``).
    """
    parts = path.replace("\\", "/").split("/")
    name = parts[-1]
    for entry in FILE_DENYLIST:
        if entry in parts or name.startswith(entry + "."):
            return True
    return False


# ============================================================
# package.json
# ============================================================

def clean_package_json(content: str, path: str = "package.json") -> RewriteOutcome:
    """
    Remove suspicious packages and vendor scripts from a manifest.

    Key order and non-ASCII characters are preserved. When nothing is
    removed the original text is returned untouched.
    """
    try:
        pkg = json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning(
            "package.json does not parse; left unchanged",
            extra={"path": path, "error": str(e)},
        )
        return RewriteOutcome(content)
    if not isinstance(pkg, dict):
        return RewriteOutcome(content)

    changes: list[str] = []
    removed = 0

    for section, label in DEPENDENCY_KINDS:
        deps = pkg.get(section)
        if not isinstance(deps, dict):
            continue
        for name in list(deps):
            if is_suspicious_package(name):
                del deps[name]
                removed += 1
                changes.append(f"{label} supprimée: {name}")

    scripts = pkg.get("scripts")
    if isinstance(scripts, dict):
        for key, value in list(scripts.items()):
            if isinstance(value, str) and any(t in value.lower() for t in SCRIPT_VENDOR_TERMS):
                del scripts[key]
                changes.append(f"Script supprimé: {key}")

    if not changes:
        return RewriteOutcome(content)

    cleaned = json.dumps(pkg, indent=2, ensure_ascii=False)
    if content.endswith("\n"):
        cleaned += "\n"
    return RewriteOutcome(cleaned, tuple(changes), packages_removed=removed)


# ============================================================
# tsconfig*.json
# ============================================================

def clean_tsconfig(content: str, path: str = "tsconfig.json") -> RewriteOutcome:
    """
    Drop vendor ``types`` and ``paths`` entries.

    tsconfig files often carry comments, which plain JSON rejects;
    those are left alone.
    """
    try:
        config = json.loads(content)
    except json.JSONDecodeError:
        logger.debug("tsconfig is not strict JSON; left unchanged", extra={"path": path})
        return RewriteOutcome(content)
    if not isinstance(config, dict):
        return RewriteOutcome(content)

    changes: list[str] = []
    options = config.get("compilerOptions")
    if isinstance(options, dict):
        types = options.get("types")
        if isinstance(types, list):
            kept = [t for t in types if not (isinstance(t, str) and _mentions_vendor(t))]
            for t in types:
                if t not in kept:
                    changes.append(f"Type propriétaire supprimé: {t}")
            options["types"] = kept

        paths = options.get("paths")
        if isinstance(paths, dict):
            for alias, targets in list(paths.items()):
                target_text = json.dumps(targets)
                if _mentions_vendor(alias) or _mentions_vendor(target_text):
                    del paths[alias]
                    changes.append(f"Alias propriétaire supprimé: {alias}")

    include = config.get("include")
    if isinstance(include, list):
        kept = [i for i in include if not (isinstance(i, str) and _mentions_vendor(i))]
        if len(kept) != len(include):
            changes.append("Entrées include propriétaires supprimées")
            config["include"] = kept

    if not changes:
        return RewriteOutcome(content)

    cleaned = json.dumps(config, indent=2, ensure_ascii=False)
    if content.endswith("\n"):
        cleaned += "\n"
    return RewriteOutcome(cleaned, tuple(changes))


# ============================================================
# vite.config.*
# ============================================================

def clean_vite_config(content: str, path: str = "vite.config.ts") -> RewriteOutcome:
    """
    Remove the tagger plugin from a Vite config.

    Plugin invocations go first so no call site outlives its import.
    """
    cleaned, _ = _apply(TAGGER_CALL_PATTERNS, content)
    cleaned, _ = _apply((TAGGER_IMPORT,) + IMPORT_PATTERNS, cleaned)

    changes = []
    if cleaned != content:
        changes.append(f"{basename(path)} nettoyé des plugins propriétaires")
    return _finish(content, cleaned, changes)


# ============================================================
# index.html
# ============================================================

_SCRIPT_BLOCK = re.compile(
    r"[ \t]*<script\b[^>]*>[\s\S]*?</script\s*>[ \t]*(?:\r?\n)?", re.IGNORECASE
)
_HEAD_TAG = re.compile(r"[ \t]*<(?:meta|link)\b[^>]*>[ \t]*(?:\r?\n)?", re.IGNORECASE)
_HTML_COMMENT = re.compile(r"[ \t]*<!--[\s\S]*?-->[ \t]*(?:\r?\n)?")
_HTML_DATA_ATTRIBUTE = re.compile(
    r"\s+data-(?:lovable|lov|gptengineer|gpt|bolt|v0)(?:-[\w-]*)?=(?:\"[^\"]*\"|'[^']*')",
    re.IGNORECASE,
)


def _drop_if_vendor(match: re.Match) -> str:
    block = match.group(0).lower()
    if any(term in block for term in HTML_VENDOR_TERMS):
        return ""
    return match.group(0)


def _drop_vendor_comment(match: re.Match) -> str:
    block = match.group(0).lower()
    if "do not remove this script tag" in block or any(t in block for t in HTML_VENDOR_TERMS):
        return ""
    return match.group(0)


def clean_index_html(content: str, path: str = "index.html") -> RewriteOutcome:
    cleaned = _SCRIPT_BLOCK.sub(_drop_if_vendor, content)
    cleaned = _HEAD_TAG.sub(_drop_if_vendor, cleaned)
    cleaned = _HTML_COMMENT.sub(_drop_vendor_comment, cleaned)
    cleaned = _HTML_DATA_ATTRIBUTE.sub("", cleaned)

    changes = []
    if cleaned != content:
        changes.append("index.html nettoyé des scripts et attributs propriétaires")
    return _finish(content, cleaned, changes)


# ============================================================
# GENERIC SOURCE (.ts/.tsx/.js/.jsx)
# ============================================================

def detect_suspicious_patterns(path: str, content: str) -> list[str]:
    """
    Soft heuristics. Never edits content; the strings are for human review.
    """
    return [
        f"{path}: {pattern.description}"
        for pattern in HIDDEN_PLUGIN_PATTERNS
        if pattern.regex.search(content)
    ]


def clean_source_file(content: str, path: str = "") -> RewriteOutcome:
    """
    Strip vendor imports, markers and telemetry literals from source.

    Import statements go first, then content patterns, then every
    string literal naming a telemetry domain is blanked to ``""``.
    """
    cleaned, fired = _apply(IMPORT_PATTERNS + CONTENT_PATTERNS, content)
    changes = [f"Code propriétaire supprimé: {p.description}" for p in fired]

    for domain, regex in _TELEMETRY_LITERALS:
        cleaned, count = _sub(regex, '""', cleaned)
        if count:
            changes.append(f"Télémétrie supprimée: {domain}")

    suspicious = tuple(detect_suspicious_patterns(path, cleaned))
    return _finish(content, cleaned, changes, suspicious=suspicious)


# ============================================================
# STYLESHEETS
# ============================================================

def clean_stylesheet(content: str, path: str = "") -> RewriteOutcome:
    """Strip asset URLs hosted on proprietary CDNs, leaving the rule in place."""
    cleaned = content
    changes = []
    for cdn, regex in _CDN_URLS:
        cleaned, count = _sub(regex, "", cleaned)
        if count:
            changes.append(f"Asset CDN propriétaire supprimé: {cdn}")
    return _finish(content, cleaned, changes)


# ============================================================
# LINE-ORIENTED FILES (.env, markdown, shell)
# ============================================================

_VENDOR_ENV_LINE = re.compile(
    r"^\s*(?:export\s+)?((?:VITE_|REACT_APP_)?(?:LOVABLE|GPT|GPTENGINEER)_\w*)\s*="
)
_VENDOR_CLI_LINE = re.compile(
    r"^\s*(?:(?:npx|bunx|pnpm\s+dlx)\s+)?(?:lovable|gptengineer|gpt-engineer|bolt|v0)(?:\s|$)"
)
_MARKDOWN_VENDOR_TERMS = (
    "lovable", "gptengineer", "gpt engineer", "gpt-engineer", "bolt.new", "v0.dev",
)


def _filter_lines(content: str, drop: Callable[[str], Optional[str]]) -> tuple[str, list[str]]:
    """Keep lines for which ``drop`` returns None; collect its messages."""
    kept, changes = [], []
    for line in content.splitlines(keepends=True):
        message = drop(line)
        if message is None:
            kept.append(line)
        else:
            changes.append(message)
    return "".join(kept), changes


def clean_env_file(content: str, path: str = ".env") -> RewriteOutcome:
    def drop(line: str) -> Optional[str]:
        if line.lstrip().startswith("#"):
            return None
        match = _VENDOR_ENV_LINE.match(line)
        if match:
            return f"Variable propriétaire supprimée: {match.group(1)}"
        if _mentions_telemetry(line):
            key = line.split("=", 1)[0].strip()
            return f"Variable de télémétrie supprimée: {key}"
        return None

    cleaned, changes = _filter_lines(content, drop)
    return _finish(content, cleaned, changes)


def clean_markdown(content: str, path: str = "README.md") -> RewriteOutcome:
    """Drop badges, vendor links and 'Built with ...' lines."""
    def drop(line: str) -> Optional[str]:
        lowered = line.lower()
        if any(term in lowered for term in _MARKDOWN_VENDOR_TERMS):
            return "ligne"
        return None

    cleaned, dropped = _filter_lines(content, drop)
    changes = []
    if dropped:
        changes.append(f"{basename(path)} nettoyé: {len(dropped)} ligne(s) propriétaire(s) supprimée(s)")
    return _finish(content, cleaned, changes)


def clean_shell_script(content: str, path: str = "") -> RewriteOutcome:
    def drop(line: str) -> Optional[str]:
        if _VENDOR_CLI_LINE.match(line) or (
            not line.lstrip().startswith("#") and _mentions_telemetry(line)
        ):
            return f"Commande propriétaire supprimée: {line.strip()}"
        return None

    cleaned, changes = _filter_lines(content, drop)
    return _finish(content, cleaned, changes)


# ============================================================
# DISPATCH TABLE: first match wins
# ============================================================

@dataclass(frozen=True)
class Rewriter:
    name: str
    matches: Callable[[str], bool]
    rewrite: Callable[[str, str], RewriteOutcome]


_VITE_CONFIG = re.compile(r"^vite\.config\.(?:ts|js|mts|mjs|cts|cjs)$")
_TSCONFIG = re.compile(r"^tsconfig(?:\.[\w-]+)?\.json$")


def _is_env_file(name: str) -> bool:
    return (name == ".env" or name.startswith(".env.")) and name != ".env.example"


REWRITERS: tuple[Rewriter, ...] = (
    # Filename-specific
    Rewriter("package.json", lambda p: basename(p) == "package.json", clean_package_json),
    Rewriter("vite.config", lambda p: bool(_VITE_CONFIG.match(basename(p))), clean_vite_config),
    Rewriter("index.html", lambda p: basename(p) == "index.html", clean_index_html),
    Rewriter("tsconfig", lambda p: bool(_TSCONFIG.match(basename(p))), clean_tsconfig),
    Rewriter("env", lambda p: _is_env_file(basename(p)), clean_env_file),
    # Generic by extension
    Rewriter("source", lambda p: p.lower().endswith(SOURCE_EXTENSIONS), clean_source_file),
    Rewriter("stylesheet", lambda p: p.lower().endswith(STYLESHEET_EXTENSIONS), clean_stylesheet),
    Rewriter("markdown", lambda p: p.lower().endswith(MARKDOWN_EXTENSIONS), clean_markdown),
    Rewriter("shell", lambda p: p.lower().endswith(SHELL_EXTENSIONS), clean_shell_script),
)


def select_rewriter(path: str) -> Optional[Rewriter]:
    for rewriter in REWRITERS:
        if rewriter.matches(path):
            return rewriter
    return None


def clean_file(
    path: str,
    content: str,
    removal_hints: Collection[str] = (),
) -> CleaningResult:
    """
    Route one file through the dispatch order and return its record.

    A rewriter that raises leaves the file unchanged; the failure is
    logged and noted in the change list, and the pipeline moves on.
    """
    reason = protection_reason(path, content)
    if reason:
        return CleaningResult(path, content, content, (reason,), protected=True)

    if is_denylisted(path) or path in removal_hints:
        return CleaningResult(
            path, content, "", (f"Fichier propriétaire supprimé: {path}",), removed=True,
        )

    rewriter = select_rewriter(path)
    if rewriter is None:
        return CleaningResult(path, content, content)

    try:
        outcome = rewriter.rewrite(content, path)
    except Exception as e:
        logger.error(
            "Rewriter failed; file left unchanged",
            extra={"path": path, "rewriter": rewriter.name, "error": str(e)},
            exc_info=True,
        )
        return CleaningResult(
            path, content, content,
            (f"Échec du nettoyage ({rewriter.name}), fichier conservé: {path}",),
            rewriter=rewriter.name,
            failed=True,
        )

    return CleaningResult(
        path=path,
        original_content=content,
        cleaned_content=outcome.cleaned,
        changes=outcome.changes,
        suspicious=outcome.suspicious,
        packages_removed=outcome.packages_removed,
        rewriter=rewriter.name,
    )


# ============================================================
# .env.example
# ============================================================

_ENV_REFERENCE = re.compile(
    r"(?:import\.meta\.env|process\.env)\.((?:VITE|REACT_APP)_[A-Z0-9_]+)"
)


def generate_env_example(files: Mapping[str, str]) -> str:
    """Template of the environment variables the cleaned code reads."""
    names = sorted({
        name
        for content in files.values()
        for name in _ENV_REFERENCE.findall(content)
        if "LOVABLE" not in name and "GPT" not in name
    })

    if not names:
        return (
            "# Variables d'environnement\n"
            "# Ajoutez vos variables ici\n"
            "# VITE_API_URL=https://api.example.com\n"
        )

    lines = [
        "# Variables d'environnement générées par Inopay",
        "# Remplissez les valeurs selon votre configuration",
        "",
    ]
    lines.extend(f"{name}=" for name in names)
    return "\n".join(lines) + "\n"
