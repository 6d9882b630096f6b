"""Named pure functions used by ``data_transform`` steps.

A transform receives the rendered input text, the results of the step's
declared sources and its options, and returns a result dict. Results carry a
``content`` key so later steps can reference them as ``{{step}}``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from ai_workflow_orchestrator.workflow.placeholders import result_text

Transform = Callable[[str, Mapping[str, Any], Mapping[str, Any]], dict[str, Any]]

_WHITESPACE = re.compile(r"\s+")
_EMOJI = re.compile(
    "["
    "\U0001f300-\U0001faff"
    "\U00002600-\U000027bf"
    "\U0001f1e6-\U0001f1ff"
    "\ufe0f"
    "]+"
)


def clean_text(text: str, sources: Mapping[str, Any], options: Mapping[str, Any]) -> dict[str, Any]:
    cleaned = text
    if options.get("remove_emojis", False):
        cleaned = _EMOJI.sub("", cleaned)
    if options.get("normalize_spacing", True):
        cleaned = _WHITESPACE.sub(" ", cleaned)
    cleaned = cleaned.strip()
    return {"content": cleaned, "original_length": len(text), "length": len(cleaned)}


def lowercase(text: str, sources: Mapping[str, Any], options: Mapping[str, Any]) -> dict[str, Any]:
    return {"content": text.lower()}


def truncate(text: str, sources: Mapping[str, Any], options: Mapping[str, Any]) -> dict[str, Any]:
    max_chars = int(options.get("max_chars", 1000))
    if max_chars < 0:
        raise ValueError(f"max_chars must be >= 0, got {max_chars}")
    return {"content": text[:max_chars], "truncated": len(text) > max_chars}


def merge_results(
    text: str, sources: Mapping[str, Any], options: Mapping[str, Any]
) -> dict[str, Any]:
    """Concatenate the input (if any) and each source's text, in source order."""
    separator = str(options.get("separator", "\n\n"))
    parts = [text] if text else []
    parts.extend(result_text(result) for result in sources.values())
    return {"content": separator.join(parts), "sources": dict(sources)}


class TransformRegistry:
    """Maps transform names to functions. Unknown names are step failures."""

    def __init__(self, transforms: Mapping[str, Transform] | None = None) -> None:
        self._transforms: dict[str, Transform] = dict(
            transforms
            if transforms is not None
            else {
                "clean_text": clean_text,
                "lowercase": lowercase,
                "truncate": truncate,
                "merge_results": merge_results,
            }
        )

    def register(self, name: str, transform: Transform) -> None:
        self._transforms[name] = transform

    def names(self) -> list[str]:
        return sorted(self._transforms)

    def apply(
        self,
        name: str,
        text: str,
        sources: Mapping[str, Any],
        options: Mapping[str, Any],
    ) -> dict[str, Any]:
        transform = self._transforms.get(name)
        if transform is None:
            raise ValueError(f"Unknown transform: {name!r} (available: {', '.join(self.names())})")
        return transform(text, sources, options)
