"""
Setup notes and cost estimate derived from a finished pipeline run.
"""

import math
from typing import List, Optional, Sequence

from core.config import settings
from .models import Blueprint, GeneratedModule

DEFAULT_ERROR_HANDLING = "Standard error handling configured between module boundaries"


def estimate_credits(
    estimated_total_nodes: int,
    min_credits: Optional[int] = None,
    max_credits: Optional[int] = None,
    nodes_per_credit: Optional[int] = None,
) -> int:
    """Credits charged for a run: one per nodes_per_credit nodes, clamped to [min, max]"""
    low = settings.min_credits if min_credits is None else min_credits
    high = settings.max_credits if max_credits is None else max_credits
    divisor = settings.nodes_per_credit if nodes_per_credit is None else nodes_per_credit
    return min(high, max(low, math.ceil(max(0, estimated_total_nodes) / max(1, divisor))))


def _required_integrations(modules: Sequence[GeneratedModule]) -> List[str]:
    seen: List[str] = []
    for module in modules:
        for integration in module.integrations:
            if integration not in seen:
                seen.append(integration)
    return seen


def build_setup_instructions(blueprint: Blueprint, modules: Sequence[GeneratedModule]) -> str:
    """
    Render the markdown setup guide shipped with a generated workflow.

    Sections: overview, required integrations, module breakdown, setup
    steps, estimated nodes, data flow and error handling.
    """
    integrations = _required_integrations(modules)
    integration_lines = "\n".join(f"- {name[:1].upper()}{name[1:]}" for name in integrations)

    module_sections = "\n".join(
        f"\n### {index + 1}. {module.name}\n"
        f"{module.description}\n"
        f"- **Estimated Nodes**: {module.estimated_nodes}\n"
        f"- **Integrations**: {', '.join(module.integrations)}\n"
        for index, module in enumerate(modules)
    )
    module_steps = "\n".join(
        f"   {index + 1}. **{module.name}**: Review and customize parameters"
        for index, module in enumerate(modules)
    )

    return f"""# Setup Instructions for {blueprint.title}

## Overview
{blueprint.description}

## Required Integrations
{integration_lines or "- None"}

## Module Breakdown
{module_sections}

## Setup Steps

1. **Configure Credentials**
   - Set up credentials for each integration in n8n
   - Test each connection before proceeding

2. **Import Workflow**
   - Copy the generated JSON
   - Import into n8n via "Import from JSON"

3. **Configure Each Module**
{module_steps}

4. **Test Data Flow**
   - Run the workflow manually first
   - Verify data passes correctly between modules
   - Check error handling

5. **Activate**
   - Once tested, activate the workflow
   - Monitor execution for the first few runs

## Estimated Total Nodes
{blueprint.estimated_total_nodes} nodes

## Data Flow
{blueprint.data_flow}

## Error Handling
{blueprint.error_handling or DEFAULT_ERROR_HANDLING}
"""
