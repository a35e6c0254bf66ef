"""
Pattern Catalog — Immutable Vendor Marker Tables

Everything the liberation engine knows about proprietary AI-builder
platforms (Lovable / GPT Engineer, Bolt, v0, Cursor, Replit) lives here:

  1. Import statements that must be stripped from source files
  2. Content patterns (plugin calls, comment markers, data attributes)
  3. File names that are dropped outright
  4. Telemetry domains, suspicious npm packages, asset CDNs
  5. Soft heuristics that are only ever reported, never removed
  6. Credential shapes the scorer treats as critical
  7. Standalone polyfills for hooks the vendor packages used to supply
  8. The protection marker and the whitelist of core files

These tables are data. They are built once at import time from tuples
and frozen dataclasses and are never mutated at runtime. Every compiled
pattern is a plain ``re.Pattern``: matching carries no cursor state
between calls, so one pattern can be reused across any number of files.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

# --- Catalog Version (stamped on every stats object and manifest) ---
CATALOG_VERSION = "3.0.0"


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class RewritePattern:
    """
    A deterministic rewrite rule.

    Every occurrence of ``regex`` is replaced with ``replacement``.
    The ``id`` is stable and shows up in change logs and findings.
    """
    id: str
    description: str
    regex: re.Pattern
    replacement: str = ""


@dataclass(frozen=True)
class SignalPattern:
    """A detection-only pattern. Used by the scorer and the soft detector."""
    id: str
    description: str
    regex: re.Pattern


@dataclass(frozen=True)
class PolyfillDefinition:
    """A standalone reimplementation of a hook a vendor package supplied."""
    hook_name: str          # e.g. "use-mobile"
    filename: str           # e.g. "use-mobile.ts"
    source_code: str
    # Extra identifiers besides the camel-cased hook name (useIsMobile, ...)
    aliases: tuple[str, ...] = ()

    @property
    def identifier(self) -> str:
        """Camel-cased hook name: use-mobile -> useMobile."""
        head, *rest = self.hook_name.split("-")
        return head + "".join(part.capitalize() for part in rest)

    @property
    def identifiers(self) -> tuple[str, ...]:
        return (self.identifier,) + tuple(a for a in self.aliases if a != self.identifier)

    @property
    def module_name(self) -> str:
        return self.filename.rsplit(".", 1)[0]


# ============================================================
# VENDOR VOCABULARY
# ============================================================

# Module specifiers that belong to a proprietary platform.
# Scoped packages (@lovable/x), bare vendor packages (lovable-tagger)
# and the handful of runtime packages named after their platform.
_VENDOR_MODULE = (
    r"(?:@(?:lovable|gptengineer|bolt|v0|cursor|replit)/[^'\"\n]*"
    r"|lovable(?:-[^'\"\n]*)?"
    r"|gptengineer(?:-[^'\"\n]*)?"
    r"|gpt-engineer(?:-[^'\"\n]*)?"
    r"|v0-(?:tagger|runtime|sdk)"
    r"|cursor-(?:sdk|runtime)"
    r"|replit-(?:runtime|sdk)"
    r"|bolt-core)"
)

_VENDOR_MARKER = r"@(?:lovable|gptengineer|bolt|v0)"

# Right-hand side of an assignment: flat text on one line, plus object
# and array literals (up to three levels deep) that may span lines.
# An unbalanced value does not match, so the statement is left intact.
_BRACES = r"\{(?:[^{}]|\{(?:[^{}]|\{[^{}]*\})*\})*\}"
_BRACKETS = r"\[(?:[^\[\]]|\[(?:[^\[\]]|\[[^\[\]]*\])*\])*\]"
_ASSIGNED_VALUE = (
    r"(?:[^;\n{}\[\]()]|" + _BRACES + r"|" + _BRACKETS
    + r"|\((?:[^()\n{}]|" + _BRACES + r")*\))*"
)

# Substrings that condemn a package.json script value
SCRIPT_VENDOR_TERMS: tuple[str, ...] = (
    "lovable",
    "gpteng",
    "gpt-engineer",
    "@bolt/",
    "bolt-core",
    "@v0/",
    "v0-tagger",
    "replit-",
)

# Names that make an index.html <script>/<meta>/<link> tag proprietary
HTML_VENDOR_TERMS: tuple[str, ...] = (
    "lovable",
    "gptengineer",
    "gpteng.co",
    "bolt.new",
    "v0.dev",
)


# ============================================================
# IMPORT PATTERNS (statement-level, removed whole)
# ============================================================

IMPORT_PATTERNS: tuple[RewritePattern, ...] = (
    RewritePattern(
        id="ES_IMPORT",
        description="import depuis un paquet propriétaire",
        regex=re.compile(
            r"^[ \t]*import\s+(?:type\s+)?[\w*${}\s,]*?\s*from\s*"
            r"['\"]" + _VENDOR_MODULE + r"['\"][ \t]*;?[ \t]*(?:\r?\n)?",
            re.MULTILINE,
        ),
    ),
    RewritePattern(
        id="SIDE_EFFECT_IMPORT",
        description="import à effet de bord propriétaire",
        regex=re.compile(
            r"^[ \t]*import\s*['\"]" + _VENDOR_MODULE
            + r"['\"][ \t]*;?[ \t]*(?:\r?\n)?",
            re.MULTILINE,
        ),
    ),
    RewritePattern(
        id="REQUIRE",
        description="require()/import() d'un paquet propriétaire",
        regex=re.compile(
            r"^[ \t]*(?:const|let|var)\s+[\w${}\s,:]+?=\s*(?:await\s+)?(?:require|import)\(\s*['\"]"
            + _VENDOR_MODULE + r"['\"]\s*\)[ \t]*;?[ \t]*(?:\r?\n|\Z)",
            re.MULTILINE,
        ),
    ),
    RewritePattern(
        id="BARE_REQUIRE",
        description="require()/import() nu d'un paquet propriétaire",
        regex=re.compile(
            r"^[ \t]*(?:await\s+)?(?:require|import)\(\s*['\"]"
            + _VENDOR_MODULE + r"['\"]\s*\)[ \t]*;?[ \t]*(?:\r?\n|\Z)",
            re.MULTILINE,
        ),
    ),
    RewritePattern(
        id="RE_EXPORT",
        description="ré-export d'un paquet propriétaire",
        regex=re.compile(
            r"^[ \t]*export\s+(?:type\s+)?[\w*${}\s,]*?\s*from\s*"
            r"['\"]" + _VENDOR_MODULE + r"['\"][ \t]*;?[ \t]*(?:\r?\n)?",
            re.MULTILINE,
        ),
    ),
)


# ============================================================
# CONTENT PATTERNS (plugin calls, markers, attributes)
# ============================================================

# Plugin invocation patterns. Ordered: the dev-gated form must be
# removed before the bare call or a dangling `mode === 'development' &&`
# is left behind.
TAGGER_CALL_PATTERNS: tuple[RewritePattern, ...] = (
    RewritePattern(
        id="DEV_GATED_TAGGER",
        description="plugin componentTagger conditionnel (mode development)",
        regex=re.compile(
            r"[ \t]*mode\s*===\s*['\"]development['\"]\s*&&\s*"
            r"componentTagger\(\s*\)[ \t]*,?[ \t]*(?:\r?\n)?"
        ),
    ),
    RewritePattern(
        id="TAGGER_CALL",
        description="appel componentTagger()",
        regex=re.compile(r"[ \t]*componentTagger\(\s*\)[ \t]*,?[ \t]*(?:\r?\n)?"),
    ),
)

TAGGER_IMPORT = RewritePattern(
    id="TAGGER_IMPORT",
    description="import lovable-tagger",
    regex=re.compile(
        r"^[ \t]*import\s*\{\s*componentTagger\s*\}\s*from\s*"
        r"['\"]lovable-tagger['\"][ \t]*;?[ \t]*(?:\r?\n)?",
        re.MULTILINE,
    ),
)

CONTENT_PATTERNS: tuple[RewritePattern, ...] = TAGGER_CALL_PATTERNS + (
    RewritePattern(
        id="LINE_COMMENT_MARKER",
        description="commentaire marqueur propriétaire",
        regex=re.compile(r"[ \t]*//[ \t]*" + _VENDOR_MARKER + r"[^\n]*(?:\n)?"),
    ),
    RewritePattern(
        id="BLOCK_COMMENT_MARKER",
        description="bloc de commentaire propriétaire",
        regex=re.compile(r"/\*\s*" + _VENDOR_MARKER + r"[\s\S]*?\*/"),
    ),
    RewritePattern(
        id="JSX_COMMENT_MARKER",
        description="commentaire JSX propriétaire",
        regex=re.compile(r"\{\s*/\*\s*" + _VENDOR_MARKER + r"[\s\S]*?\*/\s*\}"),
    ),
    RewritePattern(
        id="DATA_ATTRIBUTE",
        description="attribut data-* propriétaire",
        regex=re.compile(
            r"[ \t]+data-(?:lovable|lov|gptengineer|gpt|bolt|v0)(?:-[\w-]*)?="
            r"(?:\"[^\"]*\"|'[^']*'|\{[^}\n]*\})"
        ),
    ),
    RewritePattern(
        id="VENDOR_ENV_ACCESS",
        description="variable d'environnement propriétaire",
        regex=re.compile(
            r"(?:import\.meta\.env|process\.env)\.VITE_(?:LOVABLE|GPT)_[A-Z0-9_]+"
        ),
        replacement="undefined",
    ),
    RewritePattern(
        id="GLOBAL_MARKER",
        description="marqueur global __lovable/__gpteng",
        regex=re.compile(
            r"^[ \t]*(?:(?:window|globalThis|self)\.)?__(?:lovable|gpteng)\w*"
            r"[ \t]*=" + _ASSIGNED_VALUE + r"[ \t]*;?[ \t]*(?:\r?\n|\Z)",
            re.MULTILINE,
        ),
    ),
)


# ============================================================
# DETECTION SIGNALS (scorer input: never used to rewrite)
# ============================================================

IMPORT_SIGNALS: tuple[SignalPattern, ...] = (
    SignalPattern("LOVABLE_SCOPE", "@lovable/*", re.compile(r"@lovable/")),
    SignalPattern("GPTENGINEER_SCOPE", "@gptengineer/*", re.compile(r"@gptengineer/")),
    SignalPattern("LOVABLE_MODULE", "import lovable*",
                  re.compile(r"""from\s*['"](?:lovable|gptengineer)""")),
    SignalPattern("LOVABLE_REQUIRE", "require lovable*",
                  re.compile(r"""require\(\s*['"](?:@lovable|lovable|gptengineer)""")),
    SignalPattern("LOVABLE_TAGGER", "lovable-tagger", re.compile(r"lovable-tagger")),
    SignalPattern("COMPONENT_TAGGER", "componentTagger", re.compile(r"\bcomponentTagger\b")),
    SignalPattern("LOVABLE_CORE", "lovable-core", re.compile(r"lovable-core")),
    SignalPattern("GPT_ENGINEER", "gpt-engineer", re.compile(r"gpt-engineer")),
    SignalPattern("BOLT_SCOPE", "@bolt/*", re.compile(r"@bolt/")),
    SignalPattern("V0_SCOPE", "@v0/*", re.compile(r"@v0/")),
    SignalPattern("CURSOR_SCOPE", "@cursor/*", re.compile(r"@cursor/")),
    SignalPattern("REPLIT_SCOPE", "@replit/*", re.compile(r"@replit/")),
)

COMMENT_SIGNALS: tuple[SignalPattern, ...] = (
    SignalPattern("LINE_COMMENT_MARKER", "commentaire // @vendor",
                  re.compile(r"//[ \t]*" + _VENDOR_MARKER)),
    SignalPattern("BLOCK_COMMENT_MARKER", "commentaire /* @vendor",
                  re.compile(r"/\*\s*" + _VENDOR_MARKER)),
    SignalPattern("HTML_COMMENT_MARKER", "commentaire <!-- @vendor",
                  re.compile(r"<!--\s*" + _VENDOR_MARKER)),
    SignalPattern("GENERATED_BY", "mention « Generated by » d'une plateforme",
                  re.compile(r"(?:generated|built|made)\s+(?:by|with)\s+"
                             r"(?:lovable|gpt[ -]?engineer|bolt|v0)\b", re.IGNORECASE)),
)

EMPTY_CONFIG_SIGNALS: tuple[SignalPattern, ...] = (
    SignalPattern("EMPTY_PLUGINS", "bloc plugins vide",
                  re.compile(r"plugins\s*:\s*\[\s*\]")),
    SignalPattern("EMPTY_DEFINE", "bloc define vide",
                  re.compile(r"define\s*:\s*\{\s*\}")),
)

# Soft heuristics: reported for human review, never removed
HIDDEN_PLUGIN_PATTERNS: tuple[SignalPattern, ...] = (
    SignalPattern("HIDDEN_LOVABLE_PLUGIN", "plugin Lovable caché",
                  re.compile(r"lovable\w*plugin|lovable[\w.]*\.plugin", re.IGNORECASE)),
    SignalPattern("HIDDEN_GPTENGINEER_PLUGIN", "plugin GPT Engineer caché",
                  re.compile(r"gptengineer\w*plugin", re.IGNORECASE)),
    SignalPattern("TELEMETRY_INJECTION", "injection de télémétrie",
                  re.compile(r"inject\w*telemetry", re.IGNORECASE)),
    SignalPattern("HIDDEN_TRACKER", "tracker caché",
                  re.compile(r"hidden\w*tracker", re.IGNORECASE)),
    SignalPattern("VENDOR_API_CALL", "appel d'API Lovable",
                  re.compile(r"\blovable(?:Api)?\.(?:generate|track|report)\s*\(")),
    SignalPattern("AI_ASSISTANT", "assistant IA propriétaire",
                  re.compile(r"\b(?:getAIAssistant|runAssistant)\s*\(")),
    SignalPattern("AGENT_IMPORT", "import @agent/*",
                  re.compile(r"""['"]@agent/[^'"]+['"]""")),
    SignalPattern("VENDOR_GLOBAL", "global __lovable/__gpteng non supprimé",
                  re.compile(r"\b__(?:lovable|gpteng)\w*[ \t]*=(?!=)")),
)

# Credential shapes: a survivor is always CRITICAL
SECRET_PATTERNS: tuple[SignalPattern, ...] = (
    SignalPattern("ANTHROPIC_KEY", "clé API Anthropic", re.compile(r"sk-ant-[A-Za-z0-9_-]{20,}")),
    SignalPattern("OPENAI_KEY", "clé API OpenAI", re.compile(r"\bsk-(?!ant-)[A-Za-z0-9_-]{20,}")),
    SignalPattern("GITHUB_TOKEN", "jeton GitHub", re.compile(r"\bghp_[A-Za-z0-9]{36}\b")),
    SignalPattern("SLACK_BOT_TOKEN", "jeton Slack", re.compile(r"\bxoxb-[A-Za-z0-9-]{10,}")),
    SignalPattern("STRIPE_LIVE_KEY", "clé Stripe live", re.compile(r"\b[sr]k_live_[A-Za-z0-9]{16,}")),
    SignalPattern("AWS_ACCESS_KEY", "clé d'accès AWS", re.compile(r"\bAKIA[A-Z0-9]{16}\b")),
)


# ============================================================
# FILE, DOMAIN AND PACKAGE LISTS
# ============================================================

# Matched against path segments, and as a prefix of the file name
# followed by a dot (lovable.config -> lovable.config.ts).
FILE_DENYLIST: tuple[str, ...] = (
    ".bolt",
    ".lovable",
    ".gptengineer",
    ".gpteng",
    "lovable.config",
    "gptengineer.config",
    ".lovable.json",
    ".gptengineer.json",
    "bolt.config",
    ".bolt.json",
    ".v0",
    "v0.config",
    ".v0.json",
    "v0-manifest.json",
    ".cursor",
    ".cursorrc",
    "cursor.config",
    ".cursor.json",
    ".replit",
    "replit.nix",
    ".replit.json",
)

TELEMETRY_DOMAINS: tuple[str, ...] = (
    "lovable.app",
    "lovable.dev",
    "events.lovable",
    "telemetry.lovable",
    "gptengineer.app",
    "analytics.lovable",
    "tracking.lovable",
    "api.lovable.dev",
    "ws.lovable.dev",
    "cdn.lovable.dev",
    "cdn.gptengineer.app",
    "assets.lovable",
    "static.lovable",
    "gpteng.co",
    "v0.dev",
    "bolt.new",
)

SUSPICIOUS_PACKAGES: tuple[str, ...] = (
    "lovable-tagger",
    "@lovable/core",
    "@lovable/cli",
    "@lovable/runtime",
    "@lovable/plugin-react",
    "@gptengineer/core",
    "@gptengineer/cli",
    "gpt-engineer",
    "lovable-analytics",
    "gpt-engineer-tracker",
    "bolt-core",
    "@bolt/core",
    "@bolt/cli",
    "@bolt/runtime",
    "@v0/core",
    "@v0/cli",
    "@v0/runtime",
    "@v0/ui",
    "v0-tagger",
    "v0-sdk",
    "@cursor/core",
    "@cursor/sdk",
    "cursor-runtime",
    "@replit/core",
    "@replit/extensions",
    "replit-sdk",
)

# Every package under these npm scopes is treated as suspicious
VENDOR_SCOPES: tuple[str, ...] = (
    "@lovable/",
    "@gptengineer/",
    "@bolt/",
    "@v0/",
    "@cursor/",
    "@replit/",
)

# A vendor package named in any quoted string of a code file: dynamic
# import(), bare require(), plugin loaders. Scored with IMPORT_SIGNALS.
SPECIFIER_SIGNALS: tuple[SignalPattern, ...] = (
    SignalPattern(
        "VENDOR_SPECIFIER", "paquet propriétaire cité",
        re.compile(
            r"[\"'`](?:" + _VENDOR_MODULE + "|"
            + "|".join(re.escape(name) for name in SUSPICIOUS_PACKAGES)
            + r")[\"'`]"
        ),
    ),
)

ASSET_CDN_DOMAINS: tuple[str, ...] = (
    "cdn.lovable.app",
    "cdn.lovable.dev",
    "bolt-assets",
    "assets.bolt.new",
    "cdn.bolt.new",
    "assets.gptengineer.app",
    "cdn.gptengineer.app",
    "storage.lovable.app",
    "storage.lovable.dev",
)

DEPENDENCY_KINDS: tuple[tuple[str, str], ...] = (
    ("dependencies", "Dépendance"),
    ("devDependencies", "DevDépendance"),
    ("peerDependencies", "PeerDépendance"),
)

LOCK_FILES: tuple[str, ...] = (
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "bun.lockb",
)


# ============================================================
# PROTECTION
# ============================================================

PROTECTION_MARKER = "@inopay-core-protected"
PROTECTION_HEADER_CHARS = 500

# Path substrings of files the engine must never rewrite: its own
# pattern tables, payment and security handlers, localization.
WHITELIST: tuple[str, ...] = (
    "src/lib/clientProprietaryPatterns",
    "functions/_shared/proprietary-patterns",
    "src/lib/security-cleaner",
    "src/lib/sovereigntyReport",
    "scripts/sovereignty-audit",
    "functions/create-checkout/",
    "functions/create-liberation-checkout/",
    "functions/stripe-webhook/",
    "functions/check-subscription/",
    "functions/decrypt-secret/",
    "functions/encrypt-secret/",
    "src/i18n/",
    "src/locales/",
    "public/locales/",
)


# ============================================================
# HOOK POLYFILLS
# ============================================================

COMPAT_DIR = "src/lib/inopay-compat"

_USE_MOBILE = """import { useState, useEffect } from 'react';

/**
 * Hook to detect mobile viewport
 * Auto-generated polyfill by Inopay Liberation
 */
const MOBILE_BREAKPOINT = 768;

export function useIsMobile() {
  const [isMobile, setIsMobile] = useState(false);

  useEffect(() => {
    const checkMobile = () => setIsMobile(window.innerWidth < MOBILE_BREAKPOINT);
    checkMobile();
    window.addEventListener('resize', checkMobile);
    return () => window.removeEventListener('resize', checkMobile);
  }, []);

  return isMobile;
}

export const useMobile = useIsMobile;

export default useIsMobile;
"""

_USE_TOAST = """import { useState, useCallback } from 'react';

/**
 * Simple toast notification hook
 * Auto-generated polyfill by Inopay Liberation
 */
export interface Toast {
  id: string;
  title?: string;
  description?: string;
  variant?: 'default' | 'destructive';
}

let toastCount = 0;

export function useToast() {
  const [toasts, setToasts] = useState<Toast[]>([]);

  const dismiss = useCallback((id: string) => {
    setToasts(prev => prev.filter(t => t.id !== id));
  }, []);

  const toast = useCallback(({ title, description, variant = 'default' }: Omit<Toast, 'id'>) => {
    const id = String(++toastCount);
    setToasts(prev => [...prev, { id, title, description, variant }]);
    setTimeout(() => dismiss(id), 5000);
    return { id, dismiss: () => dismiss(id) };
  }, [dismiss]);

  return { toast, toasts, dismiss };
}

export default useToast;
"""

_USE_SIDEBAR = """import { useState, createContext, useContext } from 'react';

/**
 * Sidebar state management hook
 * Auto-generated polyfill by Inopay Liberation
 */
export interface SidebarState {
  isOpen: boolean;
  toggle: () => void;
  open: () => void;
  close: () => void;
}

const SidebarContext = createContext<SidebarState | null>(null);

export function useSidebar(): SidebarState {
  const context = useContext(SidebarContext);
  const [isOpen, setIsOpen] = useState(true);

  if (context) return context;

  return {
    isOpen,
    toggle: () => setIsOpen(prev => !prev),
    open: () => setIsOpen(true),
    close: () => setIsOpen(false),
  };
}

export { SidebarContext };
export default useSidebar;
"""

HOOK_POLYFILLS: Mapping[str, PolyfillDefinition] = MappingProxyType({
    "use-mobile": PolyfillDefinition(
        hook_name="use-mobile",
        filename="use-mobile.ts",
        source_code=_USE_MOBILE,
        aliases=("useIsMobile",),
    ),
    "use-toast": PolyfillDefinition(
        hook_name="use-toast",
        filename="use-toast.ts",
        source_code=_USE_TOAST,
    ),
    "use-sidebar": PolyfillDefinition(
        hook_name="use-sidebar",
        filename="use-sidebar.ts",
        source_code=_USE_SIDEBAR,
    ),
})


# ============================================================
# CATALOG: bundled, read-only view
# ============================================================

@dataclass(frozen=True)
class PatternCatalog:
    """Read-only bundle of every table above."""
    import_patterns: tuple[RewritePattern, ...] = IMPORT_PATTERNS
    content_patterns: tuple[RewritePattern, ...] = CONTENT_PATTERNS
    file_denylist: tuple[str, ...] = FILE_DENYLIST
    telemetry_domains: tuple[str, ...] = TELEMETRY_DOMAINS
    suspicious_packages: tuple[str, ...] = SUSPICIOUS_PACKAGES
    asset_cdn_domains: tuple[str, ...] = ASSET_CDN_DOMAINS
    whitelist: tuple[str, ...] = WHITELIST
    hook_polyfills: tuple[PolyfillDefinition, ...] = field(
        default_factory=lambda: tuple(HOOK_POLYFILLS.values())
    )
    version: str = CATALOG_VERSION

    def get_patterns(self) -> dict:
        """
        JSON-able description of the catalog.

        Used by the GET /patterns endpoint to expose the detection surface.
        """
        return {
            "version": self.version,
            "import_patterns": [
                {"id": p.id, "description": p.description} for p in self.import_patterns
            ],
            "content_patterns": [
                {"id": p.id, "description": p.description} for p in self.content_patterns
            ],
            "hidden_plugin_patterns": [
                {"id": p.id, "description": p.description} for p in HIDDEN_PLUGIN_PATTERNS
            ],
            "file_denylist": list(self.file_denylist),
            "telemetry_domains": list(self.telemetry_domains),
            "suspicious_packages": list(self.suspicious_packages),
            "asset_cdn_domains": list(self.asset_cdn_domains),
            "whitelist": list(self.whitelist),
            "hook_polyfills": [p.hook_name for p in self.hook_polyfills],
        }


# ============================================================
# SINGLETON: instantiated once, never mutated
# ============================================================

catalog = PatternCatalog()
