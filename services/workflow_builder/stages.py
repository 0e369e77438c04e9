"""
Pipeline stages for the Enterprise Workflow Builder

Each stage makes exactly one Claude call and turns the raw reply into a
typed value:

- WorkflowArchitect: request -> Blueprint
- ModuleGenerator: ModuleSpec + Blueprint -> GeneratedModule
- WorkflowAssembler: Blueprint + modules -> final WorkflowGraph

All three share the call / extract / repair / validate sequence in
BaseStage. Any failure is raised as a WorkflowGenerationError naming the
stage; nothing is retried here.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

from pydantic import ValidationError

from core.config import settings
from .ai_client import LLMResponse
from .errors import FailureKind, UpstreamCallError, WorkflowGenerationError, WorkflowValidationError
from .example_catalog import select_relevant_examples
from .models import Blueprint, GeneratedModule, ModuleSpec, ReferenceExample, WorkflowGraph, WorkflowRequest
from .prompt_builder import PromptBuilder
from .rate_limiter import FixedIntervalLimiter
from .response_parser import (
    ARCHITECT_STRATEGIES,
    ASSEMBLER_STRATEGIES,
    MODULE_STRATEGIES,
    ExtractionStrategy,
    ResponseParser,
)
from .workflow_validator import ValidationFinding, WorkflowValidator

logger = logging.getLogger(__name__)

RAW_EXCERPT_CHARS = 500

T = TypeVar("T")


def _excerpt(text: Optional[str], limit: int = RAW_EXCERPT_CHARS) -> str:
    if not text:
        return ""
    return text if len(text) <= limit else text[:limit] + "..."


@dataclass
class StageOutput(Generic[T]):
    """Value produced by a stage plus what it took to get there"""
    value: T
    repair_strategy: Optional[str] = None
    findings: List[ValidationFinding] = field(default_factory=list)
    stop_reason: Optional[str] = None


class BaseStage:
    """
    Shared call / extract / repair / validate sequence.

    Subclasses set stage_name, the extraction strategies and which settings
    hold their token budget and temperature.
    """

    stage_name = "stage"
    strategies: Sequence[ExtractionStrategy] = ()

    def __init__(
        self,
        llm_client,
        max_tokens: int,
        temperature: float,
        prompt_builder: Optional[PromptBuilder] = None,
        validator: Optional[WorkflowValidator] = None,
        max_repair_input_chars: Optional[int] = None,
    ):
        self.llm_client = llm_client
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.prompt_builder = prompt_builder or PromptBuilder(settings.example_preview_chars)
        self.validator = validator or WorkflowValidator()
        self.parser = ResponseParser(
            self.strategies,
            max_repair_input_chars if max_repair_input_chars is not None else settings.max_repair_input_chars
        )

    def _fail(self, message: str, kind: FailureKind, module_name: Optional[str] = None,
              raw: Optional[str] = None) -> WorkflowGenerationError:
        return WorkflowGenerationError(
            message,
            stage=self.stage_name,
            kind=kind,
            module_name=module_name,
            raw_excerpt=_excerpt(raw) if raw is not None else None,
        )

    async def _call(self, system_prompt: str, user_prompt: str, module_name: Optional[str] = None) -> LLMResponse:
        try:
            response = await self.llm_client.complete(
                system_prompt,
                user_prompt,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stage=self.stage_name,
            )
        except UpstreamCallError as e:
            raise self._fail(
                f"Claude API call failed during {self._describe(module_name)}: {e}",
                FailureKind.UPSTREAM,
                module_name
            ) from e

        if response.stop_reason == "max_tokens":
            logger.warning(
                f"{self._describe(module_name)} response was cut off at the "
                f"{self.max_tokens} output token limit"
            )
        return response

    def _describe(self, module_name: Optional[str]) -> str:
        return f"{self.stage_name} ({module_name})" if module_name else self.stage_name

    def _parse(self, response: LLMResponse, module_name: Optional[str] = None) -> Tuple[Dict[str, Any], Optional[str]]:
        """Extract and repair the JSON object in a response"""
        candidate = self.parser.extract(response.text)
        if candidate is None:
            raise self._fail(
                f"Failed to extract JSON from the {self._describe(module_name)} response",
                FailureKind.EXTRACTION,
                module_name,
                raw=response.text
            )

        result = self.parser.repair(candidate)
        if not result.success:
            raise self._repair_failure(result.error, result.truncated or response.hit_token_limit,
                                       module_name, candidate)

        if result.repair_applied:
            logger.info(f"Repaired {self._describe(module_name)} JSON using strategy: {result.repair_applied}")
        return result.data, result.repair_applied

    def _repair_failure(self, error: Optional[str], truncated: bool, module_name: Optional[str],
                        candidate: str) -> WorkflowGenerationError:
        kind = FailureKind.TRUNCATED if truncated else FailureKind.MALFORMED
        return self._fail(
            f"Failed to parse {self._describe(module_name)} JSON: {error or 'Unknown error'}",
            kind,
            module_name,
            raw=candidate
        )

    def _validate_graph(self, data: Dict[str, Any], label: str,
                        module_name: Optional[str] = None) -> Tuple[WorkflowGraph, List[ValidationFinding]]:
        try:
            findings = self.validator.validate(data, label)
            graph = WorkflowGraph.model_validate(data)
        except WorkflowValidationError as e:
            raise self._fail(
                f"Invalid {label}: {e} (at {e.path})", FailureKind.VALIDATION, module_name
            ) from e
        except ValidationError as e:
            raise self._fail(
                f"Invalid {label}: {e.error_count()} field error(s): {e.errors()[0]['msg']}",
                FailureKind.VALIDATION,
                module_name
            ) from e
        return graph, findings


class WorkflowArchitect(BaseStage):
    """Decomposes a request into a Blueprint of independently generated modules"""

    stage_name = "architect"
    strategies = ARCHITECT_STRATEGIES

    def __init__(self, llm_client, **kwargs):
        kwargs.setdefault("max_tokens", settings.architect_max_tokens)
        kwargs.setdefault("temperature", settings.architect_temperature)
        super().__init__(llm_client, **kwargs)

    async def run(self, request: WorkflowRequest, examples: Sequence[ReferenceExample]) -> StageOutput[Blueprint]:
        system_prompt, user_prompt = self.prompt_builder.build_architect_prompts(request, examples)
        response = await self._call(system_prompt, user_prompt)
        data, strategy = self._parse(response)

        try:
            blueprint = Blueprint.model_validate(data)
        except ValidationError as e:
            raise self._fail(
                f"Invalid blueprint structure: {e.error_count()} field error(s), first: "
                f"{'.'.join(str(part) for part in e.errors()[0]['loc'])}: {e.errors()[0]['msg']}",
                FailureKind.VALIDATION,
                raw=response.text
            ) from e

        logger.info(
            f"Blueprint '{blueprint.title}' with {len(blueprint.modules)} modules, "
            f"~{blueprint.estimated_total_nodes} nodes"
        )
        return StageOutput(blueprint, repair_strategy=strategy, stop_reason=response.stop_reason)


class ModuleGenerator(BaseStage):
    """Generates the graph fragment for one blueprint module"""

    stage_name = "module"
    strategies = MODULE_STRATEGIES

    def __init__(self, llm_client, example_count: Optional[int] = None, **kwargs):
        kwargs.setdefault("max_tokens", settings.module_max_tokens)
        kwargs.setdefault("temperature", settings.module_temperature)
        super().__init__(llm_client, **kwargs)
        self.example_count = example_count if example_count is not None else settings.module_example_count

    def select_examples(self, module: ModuleSpec) -> List[ReferenceExample]:
        query = " ".join([*module.integrations, module.name.lower()])
        return select_relevant_examples(query, self.example_count)

    async def run(self, module: ModuleSpec, blueprint: Blueprint,
                  limiter: FixedIntervalLimiter) -> StageOutput[GeneratedModule]:
        examples = self.select_examples(module)
        system_prompt, user_prompt = self.prompt_builder.build_module_prompts(module, blueprint, examples)

        await limiter.wait()
        response = await self._call(system_prompt, user_prompt, module.name)
        data, strategy = self._parse(response, module.name)
        graph, findings = self._validate_graph(data, f"module {module.name}", module.name)

        generated = GeneratedModule(
            name=module.name,
            description=module.description,
            estimated_nodes=module.estimated_nodes,
            integrations=list(module.integrations),
            workflow=graph,
        )
        logger.info(f"Module '{module.name}' generated with {len(graph.nodes)} nodes")
        return StageOutput(generated, repair_strategy=strategy, findings=findings, stop_reason=response.stop_reason)


class WorkflowAssembler(BaseStage):
    """Merges every generated module into the final workflow graph"""

    stage_name = "assembly"
    strategies = ASSEMBLER_STRATEGIES

    def __init__(self, llm_client, **kwargs):
        kwargs.setdefault("max_tokens", settings.assembler_max_tokens)
        kwargs.setdefault("temperature", settings.assembler_temperature)
        super().__init__(llm_client, **kwargs)

    async def run(self, blueprint: Blueprint, modules: Sequence[GeneratedModule]) -> StageOutput[WorkflowGraph]:
        system_prompt, user_prompt = self.prompt_builder.build_assembler_prompts(blueprint, modules)
        response = await self._call(system_prompt, user_prompt)

        try:
            data, strategy = self._parse(response)
        except WorkflowGenerationError as e:
            if not e.truncated:
                raise
            raise self._fail(
                f"Workflow too large for the assembly step: the response was cut off while combining "
                f"{len(modules)} modules. Try simplifying the workflow goal, using fewer integrations "
                f"or modules, or splitting it into separate workflows. ({e.message})",
                FailureKind.TRUNCATED,
                raw=e.raw_excerpt
            ) from e

        graph, findings = self._validate_graph(data, "final workflow")

        logger.info(f"Assembled final workflow with {len(graph.nodes)} nodes")
        return StageOutput(graph, repair_strategy=strategy, findings=findings, stop_reason=response.stop_reason)
