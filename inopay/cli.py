"""
inopay — command-line liberation.

Usage:
    inopay scan ./my-app                         # Score without changing anything
    inopay scan export.zip --json                # Machine-readable report
    inopay liberate ./my-app --out ./liberated   # Clean and write the result
    inopay liberate export.zip --out ./lib --zip --min-score 90
    inopay serve --port 8000                     # Run the HTTP API

Exit status: 0 on success, 1 when the score is below --min-score,
2 when the input cannot be read.
"""

from __future__ import annotations

import argparse
import json
import sys
import zipfile
from pathlib import Path, PurePosixPath
from typing import Optional

from inopay.config import settings
from inopay.logging import get_logger, setup_logging
from inopay.manifest import build_manifest, generate_report_html
from inopay.pipeline import clean
from inopay.scorer import CRITICAL, MAJOR, MINOR, SovereigntyReport, score_sovereignty

logger = get_logger("cli")

SKIPPED_DIRS = {"node_modules", ".git", "dist", "build", ".next", ".turbo", "coverage"}
MANIFEST_FILE = "sovereignty_manifest.json"
REPORT_FILE = "LIBERATION_REPORT.html"


# ============================================================
# LOADING / WRITING
# ============================================================

def _skipped(relative: str) -> bool:
    return any(part in SKIPPED_DIRS for part in PurePosixPath(relative).parts[:-1])


def _decode(data: bytes) -> Optional[str]:
    if b"\x00" in data:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def _strip_common_root(files: dict[str, str]) -> dict[str, str]:
    """Archives from GitHub wrap everything in a single <repo>-<branch>/ folder."""
    roots = {path.split("/", 1)[0] for path in files}
    if len(roots) == 1 and all("/" in path for path in files):
        return {path.split("/", 1)[1]: content for path, content in files.items()}
    return files


def load_project(source: Path) -> dict[str, str]:
    """Read a project directory or .zip into path -> text content."""
    files: dict[str, str] = {}

    if source.is_file() and zipfile.is_zipfile(source):
        with zipfile.ZipFile(source) as archive:
            for info in archive.infolist():
                if info.is_dir() or _skipped(info.filename):
                    continue
                text = _decode(archive.read(info))
                if text is not None:
                    files[info.filename] = text
        return _strip_common_root(files)

    if not source.is_dir():
        raise FileNotFoundError(f"Not a directory or zip archive: {source}")

    for path in sorted(source.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(source).as_posix()
        if _skipped(relative):
            continue
        text = _decode(path.read_bytes())
        if text is not None:
            files[relative] = text
    return files


def write_project(out_dir: Path, files: dict[str, str]) -> int:
    """Write files under out_dir. Paths escaping out_dir are refused."""
    root = out_dir.resolve()
    written = 0
    for relative, content in files.items():
        target = (root / relative).resolve()
        if root != target and root not in target.parents:
            logger.warning("Refusing to write outside output directory", extra={"path": relative})
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        written += 1
    return written


def zip_directory(directory: Path) -> Path:
    archive_path = directory.with_suffix(".zip")
    with zipfile.ZipFile(archive_path, "w", zipfile.ZIP_DEFLATED) as archive:
        for path in sorted(directory.rglob("*")):
            if path.is_file():
                archive.write(path, path.relative_to(directory).as_posix())
    return archive_path


# ============================================================
# OUTPUT
# ============================================================

def format_report(report: SovereigntyReport, limit: int = 20) -> str:
    counts = report.counts
    lines = [
        f"Sovereignty score: {report.score}/100 ({report.grade})",
        f"  critical: {counts[CRITICAL]}  major: {counts[MAJOR]}  minor: {counts[MINOR]}",
    ]
    if report.baseline_score is not None:
        lines.append(f"  before cleaning: {report.baseline_score}/100")
    for detail in report.details[:limit]:
        lines.append(f"  - {detail}")
    hidden = len(report.details) - limit
    if hidden > 0:
        lines.append(f"  ... {hidden} more")
    return "\n".join(lines)


# ============================================================
# COMMANDS
# ============================================================

def cmd_scan(args: argparse.Namespace) -> int:
    files = load_project(Path(args.path))
    report = score_sovereignty(None, files)

    if args.json:
        print(json.dumps({"files": len(files), **report.to_dict()}, indent=2, ensure_ascii=False))
    else:
        print(f"Scanned {len(files)} files from {args.path}")
        print(format_report(report))

    return 0 if report.score >= args.min_score else 1


def cmd_liberate(args: argparse.Namespace) -> int:
    source = Path(args.path)
    files = load_project(source)
    result = clean(
        files,
        args.remove or (),
        verify=settings.VERIFY and not args.no_verify,
        workers=args.workers or None,
    )

    project_name = args.name or source.stem
    out_dir = Path(args.out)
    outputs = dict(result.cleaned)
    outputs.setdefault(".env.example", result.env_example)
    outputs[MANIFEST_FILE] = json.dumps(
        build_manifest(project_name, result.cleaned, result.report, result.stats),
        indent=2,
        ensure_ascii=False,
    ) + "\n"
    outputs[REPORT_FILE] = generate_report_html(project_name, result.report, result.stats)
    written = write_project(out_dir, outputs)

    archive = zip_directory(out_dir) if args.zip else None

    if args.json:
        body = result.to_dict()
        body.pop("cleaned")
        body["output_dir"] = str(out_dir)
        body["archive"] = str(archive) if archive else None
        print(json.dumps(body, indent=2, ensure_ascii=False))
    else:
        stats = result.stats
        print(f"Liberated {len(files)} files -> {out_dir} ({written} written)")
        print(
            f"  cleaned: {stats.files_cleaned}  removed: {stats.files_removed}  "
            f"protected: {stats.files_protected}  packages removed: {stats.packages_removed}  "
            f"polyfills: {stats.polyfills_generated}"
        )
        for entry in stats.suspicious_patterns:
            print(f"  ? {entry}")
        for entry in stats.syntax_errors:
            print(f"  ! {entry}")
        print(format_report(result.report))
        if archive:
            print(f"Archive: {archive}")

    return 0 if result.report.score >= args.min_score else 1


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inopay",
        description="Remove proprietary AI-builder lock-in from an exported project",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: INOPAY_LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Score a project without modifying it")
    scan.add_argument("path", help="Project directory or .zip archive")
    scan.add_argument("--min-score", type=int, default=settings.MIN_SCORE)
    scan.add_argument("--json", action="store_true", help="Output JSON only")
    scan.set_defaults(func=cmd_scan)

    liberate = sub.add_parser("liberate", help="Clean a project and write the result")
    liberate.add_argument("path", help="Project directory or .zip archive")
    liberate.add_argument("--out", required=True, help="Output directory")
    liberate.add_argument("--name", default=None, help="Project name (default: input name)")
    liberate.add_argument("--remove", action="append", metavar="PATH",
                          help="Extra path to remove (repeatable)")
    liberate.add_argument("--zip", action="store_true", help="Also write <out>.zip")
    liberate.add_argument("--no-verify", action="store_true", help="Skip the verification pass")
    liberate.add_argument("--workers", type=int, default=settings.WORKERS)
    liberate.add_argument("--min-score", type=int, default=settings.MIN_SCORE)
    liberate.add_argument("--json", action="store_true", help="Output JSON only")
    liberate.set_defaults(func=cmd_liberate)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.HOST)
    serve.add_argument("--port", type=int, default=settings.PORT)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(fmt="text", level=args.log_level or "WARNING")

    try:
        return args.func(args)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
