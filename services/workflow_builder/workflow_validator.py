"""
Workflow Validator for the Enterprise Workflow Builder

Checks a parsed workflow against the minimal structural contract needed for
it to be a usable automation graph. Structural violations raise; softer
problems are reported as advisory findings and logged.
"""

import logging
import re
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, List, Optional

from .errors import WorkflowValidationError
from .models import iter_connection_targets

logger = logging.getLogger(__name__)

TRIGGER_NODE_TYPES = {
    "n8n-nodes-base.webhook",
    "n8n-nodes-base.manualTrigger",
    "n8n-nodes-base.scheduleTrigger",
}

_UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


@dataclass
class ValidationFinding:
    """An advisory finding that does not block the workflow"""
    code: str
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.code} at {self.path}: {self.message}"


def is_trigger_type(node_type: Any) -> bool:
    if not isinstance(node_type, str):
        return False
    return "Trigger" in node_type or node_type in TRIGGER_NODE_TYPES


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _check_node(node: Any, index: int):
    path = f"$.nodes[{index}]"
    if not isinstance(node, dict):
        raise WorkflowValidationError(f"Node {index} must be an object", path)

    for field_name in ("id", "name", "type"):
        value = node.get(field_name)
        if not isinstance(value, str) or not value.strip():
            raise WorkflowValidationError(
                f'Node {index} is missing required "{field_name}" field', f"{path}.{field_name}"
            )

    position = node.get("position")
    if not isinstance(position, list) or len(position) != 2 or not all(_is_number(p) for p in position):
        raise WorkflowValidationError(
            f'Node {index} ("{node["name"]}") has invalid "position" field: expected [x, y]',
            f"{path}.position"
        )


def lint_workflow(workflow: Dict[str, Any]) -> List[ValidationFinding]:
    """Advisory checks for a workflow that already passed structural validation"""
    findings: List[ValidationFinding] = []
    nodes = workflow["nodes"]

    if not any(is_trigger_type(node.get("type")) for node in nodes):
        findings.append(ValidationFinding(
            "NO_TRIGGER", "$.nodes", "Workflow may not have a trigger node"
        ))

    seen = set()
    for index, node in enumerate(nodes):
        name = node["name"]
        if name in seen:
            findings.append(ValidationFinding(
                "DUPLICATE_NODE_NAME", f"$.nodes[{index}].name", f'Node name "{name}" is used more than once'
            ))
        seen.add(name)
        if not _UUID_PATTERN.match(node["id"]):
            findings.append(ValidationFinding(
                "NON_UUID_ID", f"$.nodes[{index}].id", f'Node "{name}" id "{node["id"]}" is not a UUID'
            ))

    for source, target, _slot, _index in iter_connection_targets(workflow["connections"]):
        if source not in seen:
            findings.append(ValidationFinding(
                "UNKNOWN_SOURCE", f"$.connections.{source}", f'Connection source "{source}" is not a node'
            ))
        if target not in seen:
            findings.append(ValidationFinding(
                "UNKNOWN_TARGET", f"$.connections.{source}",
                f'Connection from "{source}" targets missing node "{target}"'
            ))

    return findings


def validate_workflow(workflow: Any, label: Optional[str] = None) -> List[ValidationFinding]:
    """
    Validate the structure of a workflow graph.

    Args:
        workflow: Parsed workflow object
        label: Name used in log messages (module name, "final workflow"...)

    Returns:
        Advisory findings; an empty list means nothing worth flagging

    Raises:
        WorkflowValidationError: on the first structural violation
    """
    if not isinstance(workflow, dict):
        raise WorkflowValidationError("Invalid workflow structure: must be an object")

    nodes = workflow.get("nodes")
    if not isinstance(nodes, list):
        raise WorkflowValidationError('Invalid workflow: missing "nodes" array', "$.nodes")
    if not nodes:
        raise WorkflowValidationError("Invalid workflow: must have at least one node", "$.nodes")

    if not isinstance(workflow.get("connections"), dict):
        raise WorkflowValidationError('Invalid workflow: missing "connections" object', "$.connections")

    for index, node in enumerate(nodes):
        _check_node(node, index)

    findings = lint_workflow(workflow)
    for finding in findings:
        logger.warning(f"{label or 'workflow'}: {finding}")
    return findings


class WorkflowValidator:
    """
    Validates generated workflows.

    Responsibilities:
    - Structural validation of module and final graphs
    - Collecting advisory findings for the caller
    """

    def validate(self, workflow: Any, label: Optional[str] = None) -> List[ValidationFinding]:
        return validate_workflow(workflow, label)
