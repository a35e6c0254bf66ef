"""
Assisted Cleaning — Finding-Aware LLM Remediation

For the residue the deterministic rewriters cannot express as a regex
(a vendor SDK wired through several statements, a telemetry client
built from string fragments), a single file can be handed to the LLM
together with the findings the scorer still reports for it.

Key design points:
  1. Threshold gate: only CRITICAL or MAJOR findings trigger a call
  2. Protected and whitelisted files are never sent
  3. Post-rewrite verification: the scorer re-checks every candidate
  4. Iterative: refinement passes target the findings that survived
  5. A candidate that scores worse or breaks bracket balance is rejected
  6. Diff spans are computed locally with diff-match-patch
"""

from __future__ import annotations

import logging

import diff_match_patch as dmp_module

from inopay.llm import LLMProvider
from inopay.protection import protection_reason
from inopay.scorer import CRITICAL, MAJOR, Finding, score_sovereignty
from inopay.validation import validate_syntax

logger = logging.getLogger(__name__)

_dmp = dmp_module.diff_match_patch()

MAX_ITERATIONS = 2

# diff-match-patch operation codes
_DIFF_KINDS = {0: "equal", -1: "delete", 1: "insert"}
_DIFF_SIDES = {"orig": ("equal", "delete"), "new": ("equal", "insert")}

CLEANING_PROMPT = """You are Inopay's code liberation assistant.

The file below comes from a project generated on a proprietary AI
builder platform. Remove every remaining dependency on that platform
so the code runs on a standard Vite/React/Node toolchain.

## Rules
1. Remove vendor imports, SDK calls, telemetry and tracking code.
2. Do not change behaviour that does not depend on the vendor.
3. Never introduce new dependencies.
4. Keep formatting, naming and comments of untouched code as they are.
5. Return the COMPLETE file, not a fragment.

## Remaining issues (fix each one)
{instructions}

## File: {path}
{content}

Return JSON with:
- "cleaned": the complete rewritten file
- "changes_made": array of strings describing each change"""


REFINEMENT_PROMPT = """You are Inopay's code liberation assistant (iteration {iteration}).

Your previous rewrite of {path} still has these issues:

{instructions}

## Rules
1. Address every issue listed above.
2. Do not touch code unrelated to these issues.
3. Return the COMPLETE file.

## File
{content}

Return JSON with:
- "cleaned": the complete rewritten file
- "changes_made": array of strings describing each change in THIS iteration"""


def _blocking(findings: tuple[Finding, ...]) -> list[Finding]:
    return [f for f in findings if f.severity in (CRITICAL, MAJOR)]


def _build_instructions(findings: list[Finding]) -> str:
    if not findings:
        return "No specific issues flagged."
    return "\n".join(
        f"{idx}. [{f.rule}] (severity: {f.severity})\n   {f.description}"
        for idx, f in enumerate(findings, 1)
    )


def _compute_diff_spans(original: str, cleaned: str) -> list[dict]:
    """
    Character spans between the original and the accepted content.

    Deleted text carries original offsets, inserted text carries new
    offsets, unchanged text carries both.
    """
    diffs = _dmp.diff_main(original, cleaned)
    _dmp.diff_cleanupSemantic(diffs)

    spans = []
    cursor = {"orig": 0, "new": 0}
    for op, text in diffs:
        kind = _DIFF_KINDS[op]
        span = {"type": kind, "text": text}
        for side in ("orig", "new"):
            if kind in _DIFF_SIDES[side]:
                span[f"{side}_start"] = cursor[side]
                span[f"{side}_end"] = cursor[side] + len(text)
                cursor[side] += len(text)
        spans.append(span)
    return spans


def _untouched(path: str, content: str, note: str) -> dict:
    return {
        "path": path,
        "original": content,
        "cleaned": content,
        "changes_made": [],
        "triggered": False,
        "accepted": False,
        "note": note,
    }


async def assist_clean(
    path: str,
    content: str,
    llm: LLMProvider,
    max_iterations: int = MAX_ITERATIONS,
) -> dict:
    """
    Ask the LLM to clean one file, then verify the result.

    Never raises: provider failures, bad JSON and rejected candidates all
    come back with the original content and an explanatory field.
    """
    reason = protection_reason(path, content)
    if reason:
        return _untouched(path, content, reason)

    before = score_sovereignty(None, {path: content})
    blocking = _blocking(before.findings)
    if not blocking:
        return _untouched(
            path, content,
            "Below assistance threshold: no critical or major finding in this file.",
        )

    iterations: list[dict] = []
    changes: list[str] = []
    current = content
    after = before

    try:
        for i in range(max_iterations):
            if i == 0:
                prompt = CLEANING_PROMPT.format(
                    instructions=_build_instructions(blocking), path=path, content=content,
                )
            else:
                prompt = REFINEMENT_PROMPT.format(
                    iteration=i + 1, path=path,
                    instructions=_build_instructions(_blocking(after.findings)),
                    content=current,
                )

            proposal = await llm.rewrite_file(prompt)
            changes.extend(proposal.changes_made)

            current = proposal.cleaned
            after = score_sovereignty(None, {path: current})
            remaining = len(_blocking(after.findings))
            iterations.append({
                "iteration": i + 1,
                "score": after.score,
                "blocking_remaining": remaining,
            })
            logger.info(
                "Assisted cleaning iteration",
                extra={"path": path, "iteration": i + 1, "sovereignty_score": after.score},
            )
            if remaining == 0:
                break

    except Exception as e:
        logger.error("Assisted cleaning failed: %s", e, exc_info=True)
        result = _untouched(path, content, "Assisted cleaning failed; original kept.")
        result["triggered"] = True
        result["error"] = str(e)
        return result

    accepted = after.score >= before.score
    rejection = None
    if not accepted:
        rejection = "Candidate scored worse than the original."
    elif validate_syntax(content, path).valid:
        check = validate_syntax(current, path)
        if not check.valid:
            accepted = False
            rejection = f"Candidate failed syntax check: {check.error}"

    final = current if accepted else content
    response = {
        "path": path,
        "original": content,
        "cleaned": final,
        "changes_made": changes if accepted else [],
        "triggered": True,
        "accepted": accepted,
        "verification": {
            "score_before": before.score,
            "score_after": after.score,
            "details_remaining": after.details,
        },
        "iteration_count": len(iterations),
        "iterations": iterations,
        "converged": bool(iterations) and iterations[-1]["blocking_remaining"] == 0,
        "diff_spans": _compute_diff_spans(content, final),
    }
    if rejection:
        response["note"] = rejection
    return response
