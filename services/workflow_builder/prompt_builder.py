"""
Prompt Builder for the Enterprise Workflow Builder

Turns requests, blueprints, modules and reference workflows into the
(system prompt, user prompt) pair each stage sends to Claude.
"""

import json
import logging
from typing import List, Optional, Sequence, Tuple

from .models import Blueprint, GeneratedModule, ModuleSpec, ReferenceExample, WorkflowRequest
from .templates import (
    ARCHITECT_USER_PROMPT,
    ARCHITECT_EXAMPLE_SECTION,
    MODULE_USER_PROMPT,
    MODULE_EXAMPLE_SECTION,
    ASSEMBLER_SYSTEM_PROMPT,
    ASSEMBLER_USER_PROMPT,
    ASSEMBLER_MODULE_SECTION,
    render_architect_system_prompt,
    render_module_system_prompt,
)

logger = logging.getLogger(__name__)

PromptPair = Tuple[str, str]


class PromptBuilder:
    """
    Builds Claude prompts for each pipeline stage.

    Responsibilities:
    - Formatting reference workflows for the architect and module stages
    - Rendering request, module and blueprint details into user prompts
    - Serializing generated modules for the assembler
    """

    def __init__(self, example_preview_chars: int = 2000):
        self.example_preview_chars = example_preview_chars

    def _preview(self, content: dict) -> str:
        text = json.dumps(content, indent=2)
        if len(text) > self.example_preview_chars:
            return text[:self.example_preview_chars] + "..."
        return text

    def format_architect_examples(self, examples: Sequence[ReferenceExample]) -> str:
        sections = [
            ARCHITECT_EXAMPLE_SECTION.format(
                name=example.name,
                complexity=example.complexity.value,
                node_count=example.node_count,
                category=example.category,
                description=example.description,
                keywords=", ".join(example.keywords),
                preview=self._preview(example.content),
            )
            for example in examples
        ]
        return "\n\n".join(sections)

    def format_module_examples(self, examples: Sequence[ReferenceExample]) -> str:
        sections = [
            MODULE_EXAMPLE_SECTION.format(name=example.name, content=json.dumps(example.content, indent=2))
            for example in examples
        ]
        return "\n\n".join(sections)

    def build_architect_prompts(
        self, request: WorkflowRequest, examples: Sequence[ReferenceExample]
    ) -> PromptPair:
        details: List[str] = []
        if request.workflow_type:
            details.append(f"**Type**: {request.workflow_type.value}")
        if request.departments:
            details.append(f"**Departments**: {', '.join(request.departments)}")
        if request.integrations:
            details.append(f"**Integrations**: {', '.join(request.integrations)}")
        if request.estimated_nodes:
            details.append(f"**Estimated Nodes**: {request.estimated_nodes}")

        system_prompt = render_architect_system_prompt(self.format_architect_examples(examples))
        user_prompt = ARCHITECT_USER_PROMPT.format(
            description=request.description,
            details="\n".join(details) + "\n" if details else "",
        )
        logger.debug(f"Architect prompts built: system={len(system_prompt)} chars, user={len(user_prompt)} chars")
        return system_prompt, user_prompt

    def build_module_prompts(
        self,
        module: ModuleSpec,
        blueprint: Blueprint,
        examples: Sequence[ReferenceExample],
    ) -> PromptPair:
        dependencies: Optional[str] = None
        if module.dependencies:
            dependencies = f"**Depends On**: {', '.join(module.dependencies)}\n"

        system_prompt = render_module_system_prompt(self.format_module_examples(examples))
        user_prompt = MODULE_USER_PROMPT.format(
            name=module.name,
            description=module.description,
            estimated_nodes=module.estimated_nodes,
            integrations=", ".join(module.integrations) or "none specified",
            dependencies=dependencies or "",
            blueprint_description=blueprint.description,
            data_flow=blueprint.data_flow,
        )
        logger.debug(f"Module prompts built for {module.name}: system={len(system_prompt)} chars")
        return system_prompt, user_prompt

    def build_assembler_prompts(self, blueprint: Blueprint, modules: Sequence[GeneratedModule]) -> PromptPair:
        modules_context = "\n\n".join(
            ASSEMBLER_MODULE_SECTION.format(
                number=index + 1,
                name=module.name,
                workflow_json=json.dumps(module.workflow.to_json(), indent=2),
            )
            for index, module in enumerate(modules)
        )
        user_prompt = ASSEMBLER_USER_PROMPT.format(
            blueprint_json=json.dumps(blueprint.model_dump(by_alias=True), indent=2),
            modules_context=modules_context,
        )
        logger.debug(f"Assembler prompt built for {len(modules)} modules: {len(user_prompt)} chars")
        return ASSEMBLER_SYSTEM_PROMPT.format(), user_prompt
