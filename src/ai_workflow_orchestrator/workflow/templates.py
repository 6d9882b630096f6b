"""Template registry and the built-in workflow templates."""

from __future__ import annotations

import logging
import threading

from ai_workflow_orchestrator.errors import (
    DuplicateStepName,
    DuplicateTemplate,
    InvalidTemplate,
    TemplateNotFound,
)
from ai_workflow_orchestrator.workflow.models import WorkflowTemplate

logger = logging.getLogger(__name__)


def validate_template(template: WorkflowTemplate) -> None:
    """Check step-name uniqueness and that every dependency names a sibling step.

    Cycles between distinct steps are not detected here; the scheduler reports
    them when the workflow runs.
    """
    names: set[str] = set()
    for step in template.steps:
        if step.name in names:
            raise DuplicateStepName(template.id, step.name)
        names.add(step.name)

    for step in template.steps:
        if step.name in step.depends_on:
            raise InvalidTemplate(f"Template {template.id!r}: step {step.name!r} depends on itself")
        unknown = sorted(step.depends_on - names)
        if unknown:
            raise InvalidTemplate(
                f"Template {template.id!r}: step {step.name!r} depends on unknown steps: "
                f"{', '.join(unknown)}"
            )


class TemplateRegistry:
    """Keyed store of workflow templates. Insert-only."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._templates: dict[str, WorkflowTemplate] = {}

    def register(self, template: WorkflowTemplate) -> None:
        validate_template(template)
        with self._lock:
            if template.id in self._templates:
                raise DuplicateTemplate(template.id)
            self._templates[template.id] = template
        logger.info(
            "Registered workflow template",
            extra={"template_id": template.id, "steps": len(template.steps)},
        )

    def get(self, template_id: str) -> WorkflowTemplate:
        with self._lock:
            template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFound(template_id)
        return template

    def list(self) -> list[WorkflowTemplate]:
        with self._lock:
            return list(self._templates.values())

    def __contains__(self, template_id: object) -> bool:
        with self._lock:
            return template_id in self._templates

    def __len__(self) -> int:
        with self._lock:
            return len(self._templates)


_EMOTION_SYSTEM_PROMPT = """You are a professional emotion analysis assistant.
Analyze the given text and report:
1. The primary emotion (joy, sadness, anger, fear, surprise, disgust, neutral)
2. Emotional intensity (1-10)
3. Likely causes of the emotion
4. Suggestions for improvement

Respond in JSON."""

_RISK_SYSTEM_PROMPT = """Using the emotion analysis, assess the user's mental-health risk level.
Risk level: LOW, MEDIUM, HIGH or CRITICAL.
Include the reasoning and recommendations."""

_INSIGHT_SYSTEM_PROMPT = """Write personalized insights and advice that will help the user.
Use a warm, empathetic tone while including professional guidance."""


def builtin_templates() -> list[WorkflowTemplate]:
    """Templates registered by default (``ORCHESTRATOR_WORKFLOW_LOAD_BUILTIN_TEMPLATES``)."""
    emotion_analysis = WorkflowTemplate.model_validate(
        {
            "id": "emotion-analysis",
            "name": "Emotion analysis",
            "description": "Analyze the emotions in a user's text and produce insights",
            "category": "emotion",
            "declared_variables": ["userText", "context"],
            "steps": [
                {
                    "name": "preprocess",
                    "kind": "data_transform",
                    "config": {
                        "transform": "clean_text",
                        "input": "{{userText}}",
                        "options": {"remove_emojis": False, "normalize_spacing": True},
                    },
                },
                {
                    "name": "analyze",
                    "kind": "provider_call",
                    "depends_on": ["preprocess"],
                    "config": {
                        "provider": "openai",
                        "task_hint": "analytical",
                        "system_prompt": _EMOTION_SYSTEM_PROMPT,
                        "prompt": "Text:\n{{preprocess}}\n\nContext: {{context}}",
                    },
                },
                {
                    "name": "risk-assess",
                    "kind": "provider_call",
                    "depends_on": ["analyze"],
                    "config": {
                        "provider": "anthropic",
                        "task_hint": "analytical",
                        "system_prompt": _RISK_SYSTEM_PROMPT,
                        "prompt": "Emotion analysis:\n{{analyze}}",
                    },
                },
                {
                    "name": "insight",
                    "kind": "provider_call",
                    "depends_on": ["analyze", "risk-assess"],
                    "config": {
                        "provider": "anthropic",
                        "task_hint": "creative",
                        "system_prompt": _INSIGHT_SYSTEM_PROMPT,
                        "prompt": (
                            "Emotion analysis:\n{{analyze}}\n\n"
                            "Risk assessment:\n{{risk-assess}}"
                        ),
                    },
                },
            ],
        }
    )

    content_generation = WorkflowTemplate.model_validate(
        {
            "id": "content-generation",
            "name": "Content generation",
            "description": "Generate mental-health related content for an audience",
            "category": "content",
            "declared_variables": ["topic", "targetAudience", "contentType"],
            "steps": [
                {
                    "name": "topic-analysis",
                    "kind": "provider_call",
                    "config": {
                        "provider": "openai",
                        "task_hint": "analytical",
                        "system_prompt": (
                            "Analyze the given topic from a mental-health perspective "
                            "and summarize the key points."
                        ),
                        "prompt": (
                            "Topic: {{topic}}\nAudience: {{targetAudience}}\n"
                            "Content type: {{contentType}}"
                        ),
                    },
                },
                {
                    "name": "draft",
                    "kind": "provider_call",
                    "depends_on": ["topic-analysis"],
                    "config": {
                        "provider": "anthropic",
                        "task_hint": "creative",
                        "system_prompt": (
                            "Using the analysis, write engaging and informative content."
                        ),
                        "prompt": (
                            "Write {{contentType}} for {{targetAudience}}.\n\n"
                            "Analysis:\n{{topic-analysis}}"
                        ),
                    },
                },
                {
                    "name": "review",
                    "kind": "validate",
                    "depends_on": ["draft"],
                    "config": {
                        "checks": ["accuracy", "tone", "compliance"],
                        "source": "{{draft}}",
                    },
                },
            ],
        }
    )

    return [emotion_analysis, content_generation]
