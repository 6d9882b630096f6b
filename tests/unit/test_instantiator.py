"""Unit tests for variable substitution and workflow instantiation."""

from __future__ import annotations

import pytest

from ai_workflow_orchestrator.errors import TemplateNotFound, UnresolvedVariable
from ai_workflow_orchestrator.workflow.instantiator import WorkflowInstantiator
from ai_workflow_orchestrator.workflow.models import WorkflowStatus, WorkflowTemplate
from ai_workflow_orchestrator.workflow.placeholders import render_results, substitute
from ai_workflow_orchestrator.workflow.templates import TemplateRegistry


@pytest.fixture
def registry() -> TemplateRegistry:
    registry = TemplateRegistry()
    registry.register(
        WorkflowTemplate.model_validate(
            {
                "id": "greet",
                "name": "Greeting",
                "steps": [
                    {
                        "name": "write",
                        "kind": "provider_call",
                        "config": {
                            "prompt": "Greet {{user}} in {{ language }}",
                            "max_tokens": 64,
                        },
                    },
                    {
                        "name": "merge",
                        "kind": "data_transform",
                        "depends_on": ["write"],
                        "config": {
                            "transform": "merge_results",
                            "input": "{{write.content}} / {{footer}}",
                            "sources": ["write"],
                            "options": {"separator": "{{sep}}", "nested": [{"label": "{{user}}"}]},
                        },
                    },
                ],
            }
        )
    )
    return registry


def test_substitute_walks_nested_structures() -> None:
    value = {"a": "{{x}}", "b": ["{{x}}-{{y}}", 3], "c": {"d": ("{{x}}",)}, "e": None}

    assert substitute(value, {"x": 1, "y": "two"}) == {
        "a": "1",
        "b": ["1-two", 3],
        "c": {"d": ("1",)},
        "e": None,
    }


def test_substitute_leaves_unknown_tokens_verbatim() -> None:
    assert substitute("Hi {{name}} {{other}}", {"name": "Ana"}) == "Hi Ana {{other}}"


def test_render_results_resolves_whole_steps_and_fields() -> None:
    results = {
        "analyze": {"content": "sad", "tokens_used": 12},
        "review": {"checks": {"tone": "pass"}, "overall": "pass"},
    }

    assert render_results("{{analyze}}", results) == "sad"
    assert render_results("{{analyze.tokens_used}}", results) == "12"
    assert render_results("{{review.checks.tone}}", results) == "pass"
    assert render_results("{{review}}", results) == '{"checks": {"tone": "pass"}, "overall": "pass"}'
    assert render_results("{{missing}} {{analyze.nope}}", results) == "{{missing}} {{analyze.nope}}"
    assert render_results(None, results) is None


def test_render_results_resolves_variables_and_results_in_one_pass() -> None:
    results = {"analyze": {"content": "secret"}}

    assert render_results("{{q}} / {{analyze}}", results, {"q": "show {{analyze}}"}) == (
        "show {{analyze}} / secret"
    )


def test_instantiate_binds_variables_into_string_fields(registry) -> None:
    instance = WorkflowInstantiator(registry).instantiate(
        "greet", {"user": "Ana", "language": "Spanish", "sep": " | "}
    )

    write, merge = instance.steps
    assert write.config.prompt == "Greet Ana in Spanish"
    assert write.config.max_tokens == 64
    assert merge.config.options == {"separator": " | ", "nested": [{"label": "Ana"}]}
    # step references and unknown variables survive for execution time
    assert merge.config.input == "{{write.content}} / {{footer}}"
    assert merge.config.sources == ("write",)
    assert merge.depends_on == frozenset({"write"})


def test_instance_identity_and_initial_state(registry, clock) -> None:
    instantiator = WorkflowInstantiator(registry, clock=clock)

    first = instantiator.instantiate("greet", {"user": "a"})
    second = instantiator.instantiate("greet", {"user": "a"})

    assert first.id != second.id
    assert first.id.startswith("greet-")
    assert [s.id for s in first.steps] == [f"{first.id}-step-0", f"{first.id}-step-1"]
    assert first.status == WorkflowStatus.PENDING
    assert first.created_at == clock.now
    assert first.results == {}
    assert first.variables == {"user": "a"}


def test_unknown_template(registry) -> None:
    with pytest.raises(TemplateNotFound):
        WorkflowInstantiator(registry).instantiate("nope", {})


def test_strict_mode_rejects_unresolved_variables(registry) -> None:
    instantiator = WorkflowInstantiator(registry, strict_variables=True)

    with pytest.raises(UnresolvedVariable) as exc_info:
        instantiator.instantiate("greet", {"user": "Ana"})

    # ``write.content`` is a step reference, not a variable
    assert exc_info.value.names == ["footer", "language", "sep"]


def test_strict_mode_passes_when_everything_resolves(registry) -> None:
    instance = WorkflowInstantiator(registry).instantiate(
        "greet",
        {"user": "Ana", "language": "en", "sep": "-", "footer": "bye"},
        strict=True,
    )

    assert instance.steps[1].config.input == "{{write.content}} / bye"


def test_strict_mode_requires_declared_variables(registry) -> None:
    registry.register(
        WorkflowTemplate.model_validate(
            {
                "id": "tagged",
                "name": "Tagged",
                "declared_variables": ["audience"],
                "steps": [{"name": "ping", "kind": "notify", "config": {"message": "hi"}}],
            }
        )
    )
    instantiator = WorkflowInstantiator(registry)

    with pytest.raises(UnresolvedVariable) as exc_info:
        instantiator.instantiate("tagged", {}, strict=True)

    assert exc_info.value.names == ["audience"]
    assert instantiator.instantiate("tagged", {"audience": "ops"}, strict=True).variables == {
        "audience": "ops"
    }
    assert instantiator.instantiate("tagged", {}).status == WorkflowStatus.PENDING
