"""CLI entrypoint for running workflows from the command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from ai_workflow_orchestrator import __version__
from ai_workflow_orchestrator.core.config import OrchestratorConfig
from ai_workflow_orchestrator.core.orchestrator import Orchestrator
from ai_workflow_orchestrator.errors import OrchestratorError, StepExecutionFailed

logger = logging.getLogger(__name__)


def _parse_var(value: str) -> tuple[str, str]:
    key, sep, val = value.partition("=")
    key = key.strip()
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return key, val


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-workflow-orchestrator",
        description="Run dependency-ordered AI workflows against configured LLM providers",
    )
    parser.add_argument(
        "--version", action="version", version=f"ai-workflow-orchestrator {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("templates", help="List registered workflow templates")

    run = subparsers.add_parser("run", help="Instantiate and execute a workflow template")
    run.add_argument("template_id", help="Template to run, e.g. 'emotion-analysis'")
    run.add_argument(
        "--var",
        dest="variables",
        action="append",
        type=_parse_var,
        default=[],
        metavar="KEY=VALUE",
        help="Workflow variable (repeatable)",
    )
    run.add_argument(
        "--strict",
        action="store_true",
        help="Fail if a placeholder resolves to neither a variable nor a step result",
    )

    return parser


def _print_templates(orchestrator: Orchestrator) -> None:
    for template in orchestrator.list_templates():
        print(f"{template.id}: {template.name} [{template.category}]")
        if template.description:
            print(f"    {template.description}")
        if template.declared_variables:
            print(f"    variables: {', '.join(sorted(template.declared_variables))}")
        for step in template.steps:
            deps = f" <- {', '.join(sorted(step.depends_on))}" if step.depends_on else ""
            print(f"    - {step.name} ({step.kind.value}){deps}")


async def _run_workflow(orchestrator: Orchestrator, args: argparse.Namespace) -> dict[str, Any]:
    try:
        instance = await orchestrator.run(
            args.template_id, dict(args.variables), strict=True if args.strict else None
        )
        return {
            "workflow": instance.model_dump(mode="json"),
            "metrics": orchestrator.metrics_summary().model_dump(mode="json"),
        }
    finally:
        await orchestrator.aclose()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = OrchestratorConfig()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    # stdout carries the command output; logs go to stderr.
    config.setup_logging(stream=sys.stderr)

    try:
        if args.command == "templates":
            _print_templates(Orchestrator(config, providers={}))
            return 0

        if args.command == "run":
            orchestrator = Orchestrator(config)
            output = asyncio.run(_run_workflow(orchestrator, args))
            print(json.dumps(output, indent=2, ensure_ascii=False))
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except StepExecutionFailed as e:
        print(f"Workflow failed at step {e.step_name!r}: {e.cause}", file=sys.stderr)
        return 1

    except OrchestratorError as e:
        print(str(e), file=sys.stderr)
        return 1

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
