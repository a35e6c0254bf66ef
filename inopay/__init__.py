"""
Inopay — Code Liberation Engine

Removes proprietary AI-builder lock-in (Lovable / GPT Engineer, Bolt,
v0, Cursor, Replit) from an exported project so it builds and runs on a
standard toolchain, and scores how sovereign the result is.

Public API:
  - catalog:              Immutable vendor marker tables
  - clean:                Full liberation pipeline over a file set
  - clean_file:           Single-file dispatch (protection, removal, rewriters)
  - synthesize_polyfills: Standalone hooks for dangling vendor call sites
  - score_sovereignty:    0-100 score with tagged findings
  - build_manifest:       Per-file hashes and global checksum
  - assist_clean:         LLM-assisted cleaning of one file, verified
  - LLMProvider:          Abstract LLM interface for provider swapping

Usage:
    from inopay import clean, score_sovereignty
    result = clean(files)
    print(result.stats.sovereignty_score)
"""

__version__ = "3.0.0"

from inopay.patterns import catalog, PatternCatalog, CATALOG_VERSION
from inopay.protection import is_protected, is_whitelisted
from inopay.rewriters import CleaningResult, clean_file, generate_env_example
from inopay.polyfills import PolyfillBundle, synthesize_polyfills
from inopay.scorer import SovereigntyReport, score_sovereignty, grade
from inopay.pipeline import CleaningStats, PipelineResult, clean
from inopay.cache import CleaningCache, cleaning_cache
from inopay.manifest import build_manifest, generate_report_html
from inopay.assistant import assist_clean
from inopay.llm import FileRewrite, LLMProvider
from inopay.llm.factory import get_provider

__all__ = [
    "catalog",
    "PatternCatalog",
    "CATALOG_VERSION",
    "is_protected",
    "is_whitelisted",
    "CleaningResult",
    "clean_file",
    "generate_env_example",
    "PolyfillBundle",
    "synthesize_polyfills",
    "SovereigntyReport",
    "score_sovereignty",
    "grade",
    "CleaningStats",
    "PipelineResult",
    "clean",
    "CleaningCache",
    "cleaning_cache",
    "build_manifest",
    "generate_report_html",
    "assist_clean",
    "FileRewrite",
    "LLMProvider",
    "get_provider",
]
