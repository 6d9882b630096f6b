"""``{{name}}`` placeholder handling.

Two passes use the same token syntax:

* instantiation substitutes workflow variables into every string field of a
  step config (:func:`substitute`), giving the bound config that is reported;
* execution renders the template text of a step once, resolving variables and
  references to earlier step results (``{{step}}`` or ``{{step.field}}``)
  together (:func:`render_results`). Text inserted by a variable is never
  rendered again.

Tokens that cannot be resolved are left verbatim.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([\w.-]+)\s*\}\}")


def substitute(value: Any, variables: Mapping[str, Any]) -> Any:
    """Replace ``{{key}}`` in every string reachable from ``value``.

    Lists, tuples and dict values are walked recursively. Dict keys and
    non-string scalars are returned unchanged.
    """
    if isinstance(value, str):

        def _replace(match: re.Match[str]) -> str:
            key = match.group(1)
            if key in variables:
                return str(variables[key])
            return match.group(0)

        return PLACEHOLDER_PATTERN.sub(_replace, value)
    if isinstance(value, list):
        return [substitute(item, variables) for item in value]
    if isinstance(value, tuple):
        return tuple(substitute(item, variables) for item in value)
    if isinstance(value, dict):
        return {key: substitute(item, variables) for key, item in value.items()}
    return value


def find_placeholders(value: Any) -> set[str]:
    """Collect every placeholder name reachable from ``value``."""
    if isinstance(value, str):
        return set(PLACEHOLDER_PATTERN.findall(value))
    if isinstance(value, (list, tuple)):
        found: set[str] = set()
        for item in value:
            found |= find_placeholders(item)
        return found
    if isinstance(value, dict):
        found = set()
        for item in value.values():
            found |= find_placeholders(item)
        return found
    return set()


def result_text(result: Any) -> str:
    """Text form of a step result: its ``content`` if it has one, else JSON."""
    if isinstance(result, Mapping) and isinstance(result.get("content"), str):
        return result["content"]
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str, ensure_ascii=False)


def _lookup(results: Mapping[str, Any], reference: str) -> tuple[bool, Any]:
    if reference in results:
        return True, results[reference]

    head, sep, rest = reference.partition(".")
    if not sep or head not in results:
        return False, None

    current: Any = results[head]
    for part in rest.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return False, None
    return True, current


def render_results(
    text: str | None,
    results: Mapping[str, Any],
    variables: Mapping[str, Any] | None = None,
) -> str | None:
    """Resolve variables, ``{{step}}`` and ``{{step.field}}`` in a single pass.

    Variables take precedence over step results of the same name.
    """
    if text is None:
        return None
    variables = variables or {}

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in variables:
            return str(variables[key])
        found, value = _lookup(results, key)
        if not found:
            return match.group(0)
        if isinstance(value, (Mapping, list)):
            return result_text(value)
        return str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, text)


def is_step_reference(name: str, step_names: set[str]) -> bool:
    """Whether a placeholder refers to a step result rather than a variable."""
    return name in step_names or name.partition(".")[0] in step_names
