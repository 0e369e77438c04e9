"""
Enterprise Workflow Builder

Main orchestration service. A run goes through:

1. Reference selection from the bundled catalog
2. Architect call producing a Blueprint
3. One module generation call per blueprint module, spaced by a fixed delay
4. Assembly call merging every module into the final graph
5. Setup instructions and credit estimate

Stages run strictly in sequence. Any failure aborts the run and reaches the
caller as a WorkflowGenerationError; no partial result is returned.
"""

import asyncio
import time
import uuid
import logging
from typing import Callable, Dict, List, Optional, Tuple

from core.config import settings
from .ai_client import AIClient
from .errors import GenerationCancelledError, WorkflowGenerationError
from .example_catalog import select_relevant_examples
from .models import (
    Blueprint,
    EnterpriseWorkflowResult,
    GeneratedModule,
    ReferenceExample,
    WorkflowGraph,
    WorkflowRequest,
)
from .rate_limiter import FixedIntervalLimiter
from .setup_instructions import build_setup_instructions, estimate_credits
from .stages import ModuleGenerator, WorkflowArchitect, WorkflowAssembler
from .workflow_validator import ValidationFinding

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str, int], None]


def log_stage_start(stage: str, run_id: str, details: str = ""):
    logger.info(f"[{run_id}] Stage started: {stage}{f' ({details})' if details else ''}")


def log_stage_end(stage: str, run_id: str, started: float):
    logger.info(f"[{run_id}] Stage finished: {stage} in {(time.time() - started) * 1000:.0f}ms")


class ProgressReporter:
    """Forwards progress to the caller, never letting the percentage go down"""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self.percent = 0

    def report(self, stage: str, message: str, percent: Optional[float] = None):
        if percent is not None:
            self.percent = max(self.percent, int(round(percent)))
        logger.debug(f"Progress {self.percent}% [{stage}] {message}")
        if self._callback is not None:
            self._callback(stage, message, self.percent)


class PipelineRun:
    """
    State of one pipeline invocation.

    Modules are only ever appended and are handed out as a tuple, so stages
    can read what was produced before them but never rewrite it.
    """

    def __init__(self, request: WorkflowRequest):
        self.request = request
        self.run_id = str(uuid.uuid4())[:8]
        self.started_at = time.time()
        self.examples: List[ReferenceExample] = []
        self.blueprint: Optional[Blueprint] = None
        self.final_workflow: Optional[WorkflowGraph] = None
        self.final_findings: List[ValidationFinding] = []
        self.module_findings: Dict[str, List[str]] = {}
        self.repairs: Dict[str, str] = {}
        self._modules: List[GeneratedModule] = []

    @property
    def modules(self) -> Tuple[GeneratedModule, ...]:
        return tuple(self._modules)

    @property
    def completed_module_names(self) -> List[str]:
        return [module.name for module in self._modules]

    def add_module(self, module: GeneratedModule, findings: List[ValidationFinding]):
        self._modules.append(module)
        if findings:
            self.module_findings[module.name] = [str(finding) for finding in findings]

    def record_repair(self, label: str, strategy: Optional[str]):
        if strategy:
            self.repairs[label] = strategy

    def elapsed_seconds(self) -> float:
        return round(time.time() - self.started_at, 3)


class EnterpriseWorkflowBuilder:
    """
    Runs the multi-stage generation pipeline.

    Responsibilities:
    - Sequencing the architect, module and assembly stages
    - Spacing module calls with a per-run interval limiter
    - Progress reporting and cancellation at stage boundaries
    - Attaching completed-module context to failures
    """

    def __init__(
        self,
        llm_client=None,
        module_delay_seconds: Optional[float] = None,
        architect_example_count: Optional[int] = None,
        sleep=asyncio.sleep,
    ):
        self.llm_client = llm_client or AIClient()
        self.module_delay_seconds = (
            settings.module_delay_seconds if module_delay_seconds is None else module_delay_seconds
        )
        self.architect_example_count = (
            settings.architect_example_count if architect_example_count is None else architect_example_count
        )
        self._sleep = sleep

        self.architect = WorkflowArchitect(self.llm_client)
        self.module_generator = ModuleGenerator(self.llm_client)
        self.assembler = WorkflowAssembler(self.llm_client)

        logger.info("Enterprise workflow builder initialized")

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event], stage: str, module_name: Optional[str] = None):
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(f"Generation cancelled before {stage}{f' ({module_name})' if module_name else ''}")
            raise GenerationCancelledError(stage, module_name)

    def select_examples(self, request: WorkflowRequest) -> List[ReferenceExample]:
        query = " ".join([request.description, *request.integrations])
        return select_relevant_examples(query, self.architect_example_count)

    async def run(
        self,
        request: WorkflowRequest,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> EnterpriseWorkflowResult:
        """
        Generate a complete workflow for a request.

        Args:
            request: What to build
            progress_callback: Called synchronously with (stage, message, percent)
            cancel_event: When set, the run stops at the next stage boundary

        Returns:
            EnterpriseWorkflowResult for the whole run

        Raises:
            WorkflowGenerationError: any stage failed or the run was cancelled
        """
        pipeline_run = PipelineRun(request)
        progress = ProgressReporter(progress_callback)
        logger.info(f"[{pipeline_run.run_id}] Enterprise workflow generation requested: "
                    f"'{request.description[:100]}'")

        try:
            return await self._execute(pipeline_run, progress, cancel_event)
        except WorkflowGenerationError as e:
            e.completed_modules = pipeline_run.completed_module_names
            logger.error(
                f"[{pipeline_run.run_id}] Generation failed at {e.stage} ({e.kind.value}): {e.message}; "
                f"completed modules: {e.completed_modules or 'none'}"
            )
            raise

    async def _execute(
        self,
        pipeline_run: PipelineRun,
        progress: ProgressReporter,
        cancel_event: Optional[asyncio.Event],
    ) -> EnterpriseWorkflowResult:
        request = pipeline_run.request
        run_id = pipeline_run.run_id
        progress.report("start", "Starting Enterprise Workflow Builder...", 0)

        self._check_cancelled(cancel_event, "examples")
        pipeline_run.examples = self.select_examples(request)
        progress.report("examples", f"Selected {len(pipeline_run.examples)} reference examples", 5)

        # Architect
        self._check_cancelled(cancel_event, "architect")
        progress.report("architect", "Analyzing requirements and creating workflow blueprint...", 10)
        started = time.time()
        log_stage_start("architect", run_id)
        architect_output = await self.architect.run(request, pipeline_run.examples)
        blueprint = architect_output.value
        pipeline_run.blueprint = blueprint
        pipeline_run.record_repair("architect", architect_output.repair_strategy)
        log_stage_end("architect", run_id, started)
        progress.report("blueprint", "Blueprint created successfully", 20)

        # Modules
        limiter = FixedIntervalLimiter(self.module_delay_seconds, sleep=self._sleep)
        total_modules = len(blueprint.modules)
        for index, module_spec in enumerate(blueprint.modules):
            self._check_cancelled(cancel_event, "module", module_spec.name)

            delay = limiter.pending_delay()
            if delay > 0:
                progress.report("module", f"Waiting {delay:.0f}s to respect rate limits...")
            progress.report("module", f"Generating {module_spec.name} module ({index + 1}/{total_modules})...")

            started = time.time()
            log_stage_start("module", run_id, module_spec.name)
            module_output = await self.module_generator.run(module_spec, blueprint, limiter)
            pipeline_run.add_module(module_output.value, module_output.findings)
            pipeline_run.record_repair(f"module:{module_spec.name}", module_output.repair_strategy)
            log_stage_end("module", run_id, started)

            progress.report(
                "module",
                f"Module {index + 1}/{total_modules} complete",
                20 + 50 * (index + 1) / total_modules
            )

        # Assembly
        self._check_cancelled(cancel_event, "assembly")
        progress.report("assembly", "Assembling modules into complete workflow...", 80)
        started = time.time()
        log_stage_start("assembly", run_id, f"{total_modules} modules")
        assembly_output = await self.assembler.run(blueprint, pipeline_run.modules)
        pipeline_run.final_workflow = assembly_output.value
        pipeline_run.final_findings = assembly_output.findings
        pipeline_run.record_repair("assembly", assembly_output.repair_strategy)
        log_stage_end("assembly", run_id, started)
        progress.report("assembly", "Workflow assembly complete", 90)

        setup_instructions = build_setup_instructions(blueprint, pipeline_run.modules)
        progress.report("instructions", "Setup instructions generated", 95)

        credits_used = estimate_credits(blueprint.estimated_total_nodes)

        result = EnterpriseWorkflowResult(
            blueprint=blueprint,
            modules=list(pipeline_run.modules),
            final_workflow=pipeline_run.final_workflow,
            setup_instructions=setup_instructions,
            credits_used=credits_used,
            validation_warnings=[str(finding) for finding in pipeline_run.final_findings],
            metadata={
                "run_id": run_id,
                "model": getattr(self.llm_client, "claude_model", None),
                "duration_seconds": pipeline_run.elapsed_seconds(),
                "reference_examples": [example.name for example in pipeline_run.examples],
                "repairs": dict(pipeline_run.repairs),
                "module_warnings": dict(pipeline_run.module_findings),
                "final_node_count": len(pipeline_run.final_workflow.nodes),
            },
        )

        progress.report("complete", "Enterprise workflow generation complete!", 100)
        logger.info(
            f"[{run_id}] Generated '{blueprint.title}': {len(pipeline_run.final_workflow.nodes)} nodes, "
            f"{total_modules} modules, {credits_used} credits in {pipeline_run.elapsed_seconds()}s"
        )
        return result
