"""Unit tests for dependency-ordered workflow execution."""

from __future__ import annotations

import asyncio

import pytest

from ai_workflow_orchestrator.errors import (
    CircularOrUnsatisfiedDependency,
    IllegalWorkflowState,
    StepExecutionFailed,
)
from ai_workflow_orchestrator.llm.dispatcher import ProviderDispatcher
from ai_workflow_orchestrator.workflow.executors import StepExecutors
from ai_workflow_orchestrator.workflow.instantiator import WorkflowInstantiator
from ai_workflow_orchestrator.workflow.models import (
    StepKind,
    WorkflowInstance,
    WorkflowStatus,
    WorkflowTemplate,
)
from ai_workflow_orchestrator.workflow.scheduler import DependencyScheduler
from ai_workflow_orchestrator.workflow.templates import TemplateRegistry, builtin_templates


def _instance(steps: list[tuple[str, list[str]]], variables: dict | None = None) -> WorkflowInstance:
    """Build a pending instance of data_transform steps with the given dependencies."""
    registry = TemplateRegistry()
    registry.register(
        WorkflowTemplate.model_validate(
            {
                "id": "t",
                "name": "Test",
                "steps": [
                    {
                        "name": name,
                        "kind": "data_transform",
                        "depends_on": deps,
                        "config": {"transform": "lowercase", "input": name.upper()},
                    }
                    for name, deps in steps
                ],
            }
        )
    )
    return WorkflowInstantiator(registry).instantiate("t", variables or {})


class Tracker:
    """Replacement data_transform executor that records timing and concurrency."""

    def __init__(self, delay: float = 0.01, fail: set[str] | None = None) -> None:
        self.delay = delay
        self.fail = fail or set()
        self.events: list[tuple[str, str]] = []
        self.seen_results: dict[str, set[str]] = {}
        self.running = 0
        self.max_running = 0
        self.cancelled: list[str] = []

    async def __call__(self, step, context):
        self.events.append(("start", step.name))
        self.seen_results[step.name] = set(context.results)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await asyncio.sleep(self.delay if step.name not in self.fail else 0)
            if step.name in self.fail:
                raise RuntimeError(f"{step.name} exploded")
            return {"content": step.name}
        except asyncio.CancelledError:
            self.cancelled.append(step.name)
            raise
        finally:
            self.running -= 1
            self.events.append(("end", step.name))


def _scheduler(dispatcher, tracker: Tracker, **kwargs) -> DependencyScheduler:
    executors = StepExecutors(dispatcher)
    executors.register(StepKind.DATA_TRANSFORM, tracker)
    return DependencyScheduler(executors, **kwargs)


@pytest.mark.asyncio
async def test_dependencies_run_before_dependents(dispatcher) -> None:
    tracker = Tracker()
    instance = _instance([("c", ["a", "b"]), ("a", []), ("b", ["a"])])

    results = await _scheduler(dispatcher, tracker).execute(instance)

    assert set(results) == {"a", "b", "c"}
    assert tracker.seen_results == {"a": set(), "b": {"a"}, "c": {"a", "b"}}
    assert instance.status == WorkflowStatus.COMPLETED
    assert instance.started_at is not None
    assert instance.completed_at is not None


@pytest.mark.asyncio
async def test_independent_steps_overlap(dispatcher) -> None:
    tracker = Tracker(delay=0.05)
    instance = _instance([("left", []), ("right", []), ("join", ["left", "right"])])

    await _scheduler(dispatcher, tracker).execute(instance)

    assert tracker.max_running == 2
    starts = [name for kind, name in tracker.events[:2]]
    assert sorted(starts) == ["left", "right"]
    assert tracker.events[-2:] == [("start", "join"), ("end", "join")]


@pytest.mark.asyncio
async def test_max_concurrent_steps_bounds_a_batch(dispatcher) -> None:
    tracker = Tracker(delay=0.02)
    instance = _instance([("a", []), ("b", []), ("c", []), ("d", [])])

    await _scheduler(dispatcher, tracker, max_concurrent_steps=2).execute(instance)

    assert tracker.max_running == 2
    assert instance.status == WorkflowStatus.COMPLETED


@pytest.mark.asyncio
async def test_cycle_is_detected_without_hanging(dispatcher) -> None:
    tracker = Tracker()
    instance = _instance([("start", []), ("a", ["b"]), ("b", ["a"])])

    with pytest.raises(CircularOrUnsatisfiedDependency) as exc_info:
        await asyncio.wait_for(_scheduler(dispatcher, tracker).execute(instance), timeout=5)

    assert exc_info.value.blocked_steps == ["a", "b"]
    assert instance.status == WorkflowStatus.FAILED
    assert instance.results == {"start": {"content": "start"}}


@pytest.mark.asyncio
async def test_first_failure_cancels_siblings_and_fails_workflow(dispatcher) -> None:
    tracker = Tracker(delay=1.0, fail={"bad"})
    instance = _instance([("bad", []), ("slow", []), ("after", ["bad", "slow"])])

    with pytest.raises(StepExecutionFailed) as exc_info:
        await _scheduler(dispatcher, tracker).execute(instance)

    assert exc_info.value.step_name == "bad"
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert tracker.cancelled == ["slow"]
    assert ("start", "after") not in tracker.events
    assert instance.status == WorkflowStatus.FAILED
    assert instance.failed_step == "bad"
    assert "bad exploded" in instance.error


@pytest.mark.asyncio
async def test_only_pending_instances_run(dispatcher) -> None:
    tracker = Tracker()
    scheduler = _scheduler(dispatcher, tracker)
    instance = _instance([("a", [])])

    await scheduler.execute(instance)

    with pytest.raises(IllegalWorkflowState):
        await scheduler.execute(instance)


def test_scheduler_rejects_invalid_concurrency(dispatcher) -> None:
    with pytest.raises(ValueError):
        DependencyScheduler(StepExecutors(dispatcher), max_concurrent_steps=0)


@pytest.mark.asyncio
async def test_emotion_analysis_end_to_end(recorder, make_provider) -> None:
    prompts: dict[str, list[str]] = {"openai": [], "anthropic": []}

    def reply_for(provider_id):
        def reply(prompt: str) -> str:
            prompts[provider_id].append(prompt)
            return f"{provider_id} answer {len(prompts[provider_id])}"

        return reply

    dispatcher = ProviderDispatcher(
        recorder,
        {
            "openai": make_provider("openai", reply=reply_for("openai")),
            "anthropic": make_provider(
                "anthropic", model_id="claude-3-sonnet-20240229", reply=reply_for("anthropic")
            ),
        },
    )
    registry = TemplateRegistry()
    for template in builtin_templates():
        registry.register(template)
    instance = WorkflowInstantiator(registry).instantiate("emotion-analysis", {"userText": "sample"})

    results = await DependencyScheduler(StepExecutors(dispatcher)).execute(instance)

    assert set(results) == {"preprocess", "analyze", "risk-assess", "insight"}
    assert results["preprocess"]["content"] == "sample"
    assert results["analyze"]["provider_id"] == "openai"
    assert "Text:\nsample" in prompts["openai"][0]

    # risk-assess runs first on anthropic, insight second and sees both predecessors
    risk_prompt, insight_prompt = prompts["anthropic"]
    assert "openai answer 1" in risk_prompt
    assert "openai answer 1" in insight_prompt
    assert "anthropic answer 1" in insight_prompt
    assert results["insight"]["content"] == "anthropic answer 2"

    assert instance.status == WorkflowStatus.COMPLETED
    assert len(recorder.calls()) == 3


@pytest.mark.asyncio
async def test_cancelled_sibling_provider_call_is_recorded(recorder, make_provider) -> None:
    provider = make_provider("openai", delay=1.0)
    dispatcher = ProviderDispatcher(recorder, {"openai": provider})
    registry = TemplateRegistry()
    registry.register(
        WorkflowTemplate.model_validate(
            {
                "id": "mixed",
                "name": "Mixed",
                "steps": [
                    {"name": "slow", "kind": "provider_call", "config": {"prompt": "wait"}},
                    {"name": "bad", "kind": "data_transform", "config": {"transform": "shout"}},
                ],
            }
        )
    )
    instance = WorkflowInstantiator(registry).instantiate("mixed")

    with pytest.raises(StepExecutionFailed) as exc_info:
        await DependencyScheduler(StepExecutors(dispatcher)).execute(instance)

    assert exc_info.value.step_name == "bad"
    assert len(recorder.calls()) == len(provider.calls) == 1
    [metric] = recorder.calls()
    assert metric.provider_id == "openai"
    assert metric.success is False
    assert metric.tokens_used == 0


@pytest.mark.asyncio
async def test_cancelled_execution_marks_workflow_failed(dispatcher) -> None:
    tracker = Tracker(delay=1.0)
    instance = _instance([("a", []), ("b", ["a"])])

    with pytest.raises(TimeoutError):
        await asyncio.wait_for(_scheduler(dispatcher, tracker).execute(instance), timeout=0.05)

    assert instance.status == WorkflowStatus.FAILED
    assert instance.completed_at is not None
    assert instance.failed_step is None
    assert "cancelled" in instance.error
    assert tracker.cancelled == ["a"]
