#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the orchestrator directly:

* load settings from `.env` (API keys are read from the environment variables
  named by ``ORCHESTRATOR_LLM_*_API_KEY_REF``)
* register a custom template next to the built-in ones
* run it and print the results and the metrics summary
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Sequence

from ai_workflow_orchestrator import Orchestrator, OrchestratorConfig
from ai_workflow_orchestrator.workflow.models import WorkflowTemplate

SUMMARY_TEMPLATE = WorkflowTemplate.model_validate(
    {
        "id": "summarize-and-review",
        "name": "Summarize and review",
        "category": "content",
        "declared_variables": ["text"],
        "steps": [
            {
                "name": "clean",
                "kind": "data_transform",
                "config": {"transform": "clean_text", "input": "{{text}}"},
            },
            {
                "name": "summary",
                "kind": "provider_call",
                "depends_on": ["clean"],
                "config": {
                    "task_hint": "analytical",
                    "max_tokens": 200,
                    "prompt": "Summarize in three sentences:\n\n{{clean}}",
                },
            },
            {
                "name": "review",
                "kind": "validate",
                "depends_on": ["summary"],
                "config": {"checks": ["accuracy", "tone"], "source": "{{summary}}"},
            },
            {
                "name": "announce",
                "kind": "notify",
                "depends_on": ["summary", "review"],
                "config": {
                    "channel": "summaries",
                    "message": "Summary ready ({{review.overall}}): {{summary}}",
                },
            },
        ],
    }
)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarize text with a custom workflow.")
    parser.add_argument("text", help="Text to summarize")
    return parser.parse_args(argv)


async def _run(text: str) -> int:
    config = OrchestratorConfig()
    config.setup_logging()

    async with Orchestrator(config) as orchestrator:
        orchestrator.register_template(SUMMARY_TEMPLATE)
        instance = await orchestrator.run("summarize-and-review", {"text": text})

        print(json.dumps(instance.results, indent=2, ensure_ascii=False))
        print(orchestrator.metrics_summary().model_dump_json(indent=2))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    return asyncio.run(_run(args.text))


if __name__ == "__main__":
    raise SystemExit(main())
