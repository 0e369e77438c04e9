"""
Enterprise workflow routes: generation and the reference catalog.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from services.workflow_builder import (
    EnterpriseWorkflowBuilder,
    FailureKind,
    ReferenceExample,
    WorkflowGenerationError,
    WorkflowRequest,
)
from services.workflow_builder.example_catalog import (
    extract_keywords,
    get_all_examples,
    get_examples_by_category,
    get_examples_by_complexity,
    select_relevant_examples,
)
from services.workflow_builder.models import Complexity

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/enterprise", tags=["Enterprise"])

DISCONNECT_POLL_SECONDS = 1.0

STATUS_BY_FAILURE = {
    FailureKind.EXTRACTION: 422,
    FailureKind.TRUNCATED: 422,
    FailureKind.MALFORMED: 422,
    FailureKind.VALIDATION: 422,
    FailureKind.UPSTREAM: 502,
    FailureKind.CANCELLED: 499,
}

_builder: Optional[EnterpriseWorkflowBuilder] = None


def get_workflow_builder() -> EnterpriseWorkflowBuilder:
    """Shared builder instance, created on first use"""
    global _builder
    if _builder is None:
        _builder = EnterpriseWorkflowBuilder()
    return _builder


def _summarize(example: ReferenceExample, include_content: bool = False) -> Dict[str, Any]:
    summary = {
        "name": example.name,
        "description": example.description,
        "keywords": list(example.keywords),
        "category": example.category,
        "complexity": example.complexity.value,
        "node_count": example.node_count,
    }
    if include_content:
        summary["content"] = example.content
    return summary


async def _cancel_on_disconnect(request: Request, cancel_event: asyncio.Event):
    """Set the cancel event once the client goes away"""
    while not cancel_event.is_set():
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)
        if await request.is_disconnected():
            logger.warning("Client disconnected, cancelling workflow generation")
            cancel_event.set()


@router.post("/workflows")
async def generate_enterprise_workflow(
    workflow_request: WorkflowRequest,
    request: Request,
    builder: EnterpriseWorkflowBuilder = Depends(get_workflow_builder),
) -> Dict[str, Any]:
    """
    Run the full generation pipeline for one request.

    Returns the blueprint, generated modules, final workflow, setup
    instructions and credit estimate. Failures come back with the typed
    failure (stage, kind, module, completed modules) as the error detail.
    """
    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_cancel_on_disconnect(request, cancel_event))

    try:
        result = await builder.run(workflow_request, cancel_event=cancel_event)
    except WorkflowGenerationError as e:
        status_code = STATUS_BY_FAILURE.get(e.kind, 500)
        logger.error(f"Enterprise workflow generation failed ({status_code}): {e.message}")
        raise HTTPException(status_code=status_code, detail=e.to_dict())
    finally:
        watcher.cancel()

    return result.model_dump(mode="json", by_alias=True)


@router.get("/examples")
async def list_reference_examples(
    category: Optional[str] = Query(None, description="Filter by catalog category"),
    complexity: Optional[Complexity] = Query(None, description="Filter by complexity tier"),
    include_content: bool = Query(False, description="Include the full workflow payloads")
) -> Dict[str, Any]:
    """List the reference workflows used to ground generation"""
    if category:
        examples: List[ReferenceExample] = get_examples_by_category(category)
        if complexity:
            examples = [example for example in examples if example.complexity == complexity]
    elif complexity:
        examples = get_examples_by_complexity(complexity)
    else:
        examples = get_all_examples()

    return {
        "examples": [_summarize(example, include_content) for example in examples],
        "total": len(examples)
    }


@router.get("/examples/relevant")
async def get_relevant_examples(
    q: str = Query(..., min_length=1, description="Free-text description to match"),
    limit: int = Query(3, ge=1, le=10, description="Maximum number of examples")
) -> Dict[str, Any]:
    """Run the relevance selector against a description"""
    examples = select_relevant_examples(q, limit)
    return {
        "query": q,
        "keywords": extract_keywords(q),
        "examples": [_summarize(example) for example in examples]
    }
