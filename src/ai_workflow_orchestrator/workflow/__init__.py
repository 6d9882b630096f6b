"""Workflow templates, instantiation and dependency-ordered execution."""

from ai_workflow_orchestrator.workflow.executors import StepContext, StepExecutors
from ai_workflow_orchestrator.workflow.instantiator import WorkflowInstantiator
from ai_workflow_orchestrator.workflow.models import (
    DataTransformConfig,
    NotifyConfig,
    ProviderCallConfig,
    StepDescriptor,
    StepKind,
    ValidateConfig,
    WorkflowInstance,
    WorkflowStatus,
    WorkflowStep,
    WorkflowTemplate,
)
from ai_workflow_orchestrator.workflow.notifications import (
    LoggingNotificationSink,
    NotificationReceipt,
    NotificationSink,
    WebhookNotificationSink,
)
from ai_workflow_orchestrator.workflow.scheduler import DependencyScheduler
from ai_workflow_orchestrator.workflow.store import WorkflowStore
from ai_workflow_orchestrator.workflow.templates import TemplateRegistry, builtin_templates
from ai_workflow_orchestrator.workflow.transforms import TransformRegistry

__all__ = [
    "DataTransformConfig",
    "DependencyScheduler",
    "LoggingNotificationSink",
    "NotificationReceipt",
    "NotificationSink",
    "NotifyConfig",
    "ProviderCallConfig",
    "StepContext",
    "StepDescriptor",
    "StepExecutors",
    "StepKind",
    "TemplateRegistry",
    "TransformRegistry",
    "ValidateConfig",
    "WebhookNotificationSink",
    "WorkflowInstance",
    "WorkflowInstantiator",
    "WorkflowStatus",
    "WorkflowStep",
    "WorkflowStore",
    "WorkflowTemplate",
    "builtin_templates",
]
