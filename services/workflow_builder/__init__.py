"""
Enterprise Workflow Builder Package

Generates large n8n-style automation workflows from natural language by
chaining architect, module generation and assembly calls to Claude.
"""

from .generator import EnterpriseWorkflowBuilder, PipelineRun
from .ai_client import AIClient, LLMResponse
from .errors import (
    FailureKind,
    GenerationCancelledError,
    UpstreamCallError,
    WorkflowBuilderError,
    WorkflowGenerationError,
    WorkflowValidationError,
)
from .example_catalog import select_relevant_examples
from .json_repair import RepairResult, RepairStrategy, repair_json
from .workflow_validator import WorkflowValidator, validate_workflow
from .models import (
    Blueprint,
    EnterpriseWorkflowResult,
    GeneratedModule,
    ModuleSpec,
    ReferenceExample,
    WorkflowGraph,
    WorkflowRequest,
)

__all__ = [
    'EnterpriseWorkflowBuilder',
    'PipelineRun',
    'AIClient',
    'LLMResponse',
    'FailureKind',
    'GenerationCancelledError',
    'UpstreamCallError',
    'WorkflowBuilderError',
    'WorkflowGenerationError',
    'WorkflowValidationError',
    'select_relevant_examples',
    'RepairResult',
    'RepairStrategy',
    'repair_json',
    'WorkflowValidator',
    'validate_workflow',
    'Blueprint',
    'EnterpriseWorkflowResult',
    'GeneratedModule',
    'ModuleSpec',
    'ReferenceExample',
    'WorkflowGraph',
    'WorkflowRequest',
]
