"""
CLI interface for the Enterprise Workflow Builder.
"""

import asyncio
import json
import sys

from core.config import settings
from core.logging_config import configure_logging_from_settings
from .errors import WorkflowGenerationError
from .generator import EnterpriseWorkflowBuilder
from .models import WorkflowRequest, WorkflowType

WORKFLOW_TYPES = [workflow_type.value for workflow_type in WorkflowType]


def print_usage():
    print("Usage: python -m services.workflow_builder.cli <description> [options]")
    print("\nOptions:")
    print(f"  --type <type>                Workflow type: {', '.join(WORKFLOW_TYPES)}")
    print("  --integrations <a,b>         Comma-separated integrations to use")
    print("  --departments <x,y>          Comma-separated departments involved")
    print("  --output <file>              Write the final workflow JSON to a file")
    print("\nExamples:")
    print("  python -m services.workflow_builder.cli 'Sync Shopify orders to HubSpot and alert sales in Slack'")
    print("  python -m services.workflow_builder.cli 'Onboard new customers across sales and support' "
          "--type customer_journey --integrations hubspot,gmail,slack")


def _split(value: str):
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_args(argv):
    """Parse CLI arguments into a request and an optional output path"""
    description = argv[0]
    workflow_type = None
    integrations = []
    departments = []
    output_file = None

    i = 1
    while i < len(argv):
        if argv[i] == "--type" and i + 1 < len(argv):
            workflow_type = argv[i + 1]
            i += 2
        elif argv[i] == "--integrations" and i + 1 < len(argv):
            integrations = _split(argv[i + 1])
            i += 2
        elif argv[i] == "--departments" and i + 1 < len(argv):
            departments = _split(argv[i + 1])
            i += 2
        elif argv[i] == "--output" and i + 1 < len(argv):
            output_file = argv[i + 1]
            i += 2
        else:
            i += 1

    if workflow_type is not None and workflow_type not in WORKFLOW_TYPES:
        raise ValueError(f"Invalid workflow type '{workflow_type}'. Must be one of: {', '.join(WORKFLOW_TYPES)}")

    request = WorkflowRequest(
        description=description,
        workflow_type=workflow_type,
        integrations=integrations,
        departments=departments,
    )
    return request, output_file


def print_progress(stage: str, message: str, percent: int):
    print(f"   [{percent:3d}%] {stage}: {message}")


async def main():
    """Main CLI function"""
    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    try:
        request, output_file = parse_args(sys.argv[1:])
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if not settings.anthropic_api_key:
        print("Error: ANTHROPIC_API_KEY environment variable is required")
        print("Set it with: export ANTHROPIC_API_KEY=your_api_key_here")
        sys.exit(1)

    configure_logging_from_settings(log_format="simple")

    print("🚀 Enterprise Workflow Builder CLI")
    print(f"   Description: {request.description}")
    if request.workflow_type:
        print(f"   Type: {request.workflow_type.value}")
    if request.integrations:
        print(f"   Integrations: {', '.join(request.integrations)}")
    if request.departments:
        print(f"   Departments: {', '.join(request.departments)}")
    print()

    builder = EnterpriseWorkflowBuilder()

    try:
        result = await builder.run(request, progress_callback=print_progress)
    except WorkflowGenerationError as e:
        print(f"\n❌ Generation failed during {e.stage} ({e.kind.value})")
        print(f"   {e.message}")
        if e.completed_modules:
            print(f"   Completed modules: {', '.join(e.completed_modules)}")
        sys.exit(1)

    print("\n✅ Workflow generated successfully!")
    print(f"   Title: {result.blueprint.title}")
    print(f"   Modules: {len(result.modules)}")
    print(f"   Nodes: {len(result.final_workflow.nodes)}")
    print(f"   Credits: {result.credits_used}")

    if result.validation_warnings:
        print("\n⚠️  Validation warnings:")
        for warning in result.validation_warnings:
            print(f"   - {warning}")

    workflow_json = json.dumps(result.final_workflow.to_json(), indent=2)
    if output_file:
        with open(output_file, "w") as f:
            f.write(workflow_json)
        print(f"\n💾 Workflow saved to: {output_file}")
    else:
        print("\n📋 Final workflow:")
        print(workflow_json)

    print("\n📖 Setup instructions:")
    print(result.setup_instructions)


def run():
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
