"""
LLM Provider — Abstract Interface

Assisted cleaning is the only consumer; the deterministic pipeline
never calls a model. A provider implements `generate`, and the base
class turns a JSON reply into a `FileRewrite` the assistant can verify.
Swap providers with INOPAY_LLM_PROVIDER.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FileRewrite:
    """One model proposal for a single file."""
    cleaned: str
    changes_made: tuple[str, ...] = ()


def strip_code_fences(text: str) -> str:
    """Drop a ```lang ... ``` wrapper around a reply or a file body."""
    body = text.strip()
    if not body.startswith("```"):
        return body
    _, _, rest = body.partition("\n")
    return rest.rsplit("```", 1)[0].strip()


class LLMProvider(ABC):

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.2,
        json_mode: bool = False,
    ) -> str:
        """Return the raw text completion for `prompt`."""

    async def generate_json(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.1,
    ) -> dict:
        raw = await self.generate(
            prompt,
            system_instruction=system_instruction,
            temperature=temperature,
            json_mode=True,
        )
        try:
            payload = json.loads(strip_code_fences(raw))
        except json.JSONDecodeError as e:
            raise ValueError(f"Model returned invalid JSON ({e}): {raw[:300]}") from e
        if not isinstance(payload, dict):
            raise ValueError(f"Model reply is not a JSON object: {raw[:300]}")
        return payload

    async def rewrite_file(self, prompt: str, temperature: float = 0.1) -> FileRewrite:
        """
        Ask for a rewritten file.

        The reply must carry a string "cleaned"; "changes_made" is
        optional. Fences around the file body are removed.
        """
        payload = await self.generate_json(prompt, temperature=temperature)
        cleaned = payload.get("cleaned")
        if not isinstance(cleaned, str):
            raise ValueError("Model reply has no 'cleaned' file content")
        changes = payload.get("changes_made") or []
        if isinstance(changes, str):
            changes = [changes]
        return FileRewrite(
            cleaned=strip_code_fences(cleaned) if cleaned.lstrip().startswith("```") else cleaned,
            changes_made=tuple(str(c) for c in changes),
        )
