"""
Tests for the structural workflow validator.
"""
import pytest

from services.workflow_builder.errors import WorkflowValidationError
from services.workflow_builder.workflow_validator import (
    WorkflowValidator,
    is_trigger_type,
    lint_workflow,
    validate_workflow,
)


class TestStructuralValidation:
    """Violations that reject a workflow."""

    def test_minimal_two_node_graph_passes(self, sample_workflow):
        findings = validate_workflow(sample_workflow)
        assert findings == []

    @pytest.mark.parametrize("workflow", [None, [], "workflow", 42])
    def test_non_object_is_rejected(self, workflow):
        with pytest.raises(WorkflowValidationError, match="must be an object"):
            validate_workflow(workflow)

    def test_missing_nodes(self):
        with pytest.raises(WorkflowValidationError, match='missing "nodes"') as exc_info:
            validate_workflow({"connections": {}})
        assert exc_info.value.path == "$.nodes"

    def test_empty_nodes(self):
        with pytest.raises(WorkflowValidationError, match="at least one node"):
            validate_workflow({"nodes": [], "connections": {}})

    def test_nodes_checked_before_connections(self):
        with pytest.raises(WorkflowValidationError, match="at least one node"):
            validate_workflow({"nodes": []})

    def test_missing_connections(self, sample_workflow):
        del sample_workflow["connections"]
        with pytest.raises(WorkflowValidationError, match='missing "connections"'):
            validate_workflow(sample_workflow)

    def test_connections_must_be_object(self, sample_workflow):
        sample_workflow["connections"] = []
        with pytest.raises(WorkflowValidationError, match='"connections"'):
            validate_workflow(sample_workflow)

    @pytest.mark.parametrize("field", ["id", "name", "type"])
    def test_missing_node_field(self, sample_workflow, field):
        del sample_workflow["nodes"][1][field]
        with pytest.raises(WorkflowValidationError, match=f'Node 1 is missing required "{field}"') as exc_info:
            validate_workflow(sample_workflow)
        assert exc_info.value.path == f"$.nodes[1].{field}"

    def test_blank_node_name(self, sample_workflow):
        sample_workflow["nodes"][0]["name"] = "  "
        with pytest.raises(WorkflowValidationError, match='"name"'):
            validate_workflow(sample_workflow)

    @pytest.mark.parametrize("position", [None, [100], [1, 2, 3], ["1", "2"], [True, 5], {"x": 1, "y": 2}])
    def test_invalid_position(self, sample_workflow, position):
        sample_workflow["nodes"][0]["position"] = position
        with pytest.raises(WorkflowValidationError, match='invalid "position"'):
            validate_workflow(sample_workflow)

    def test_float_position_is_fine(self, sample_workflow):
        sample_workflow["nodes"][0]["position"] = [120.5, -40.25]
        assert validate_workflow(sample_workflow) == []

    def test_node_must_be_object(self, sample_workflow):
        sample_workflow["nodes"].append("not a node")
        with pytest.raises(WorkflowValidationError, match="Node 2 must be an object"):
            validate_workflow(sample_workflow)


class TestAdvisoryFindings:
    """Softer problems are reported, never raised."""

    def test_missing_trigger(self, make_workflow):
        workflow = make_workflow("Set A", "Set B", first_type="n8n-nodes-base.set")
        codes = [finding.code for finding in validate_workflow(workflow)]
        assert codes == ["NO_TRIGGER"]

    def test_dangling_connection_target(self, sample_workflow):
        sample_workflow["connections"]["Set Fields"] = {
            "main": [[{"node": "Ghost Node", "type": "main", "index": 0}]]
        }
        findings = lint_workflow(sample_workflow)

        assert [finding.code for finding in findings] == ["UNKNOWN_TARGET"]
        assert "Ghost Node" in findings[0].message

    def test_unknown_source(self, sample_workflow):
        sample_workflow["connections"]["Nowhere"] = {
            "main": [[{"node": "Webhook", "type": "main", "index": 0}]]
        }
        assert [finding.code for finding in lint_workflow(sample_workflow)] == ["UNKNOWN_SOURCE"]

    def test_duplicate_names_and_non_uuid_ids(self, sample_workflow):
        sample_workflow["nodes"][1]["name"] = "Webhook"
        sample_workflow["nodes"][1]["id"] = "node-2"
        codes = {finding.code for finding in lint_workflow(sample_workflow)}

        assert "DUPLICATE_NODE_NAME" in codes
        assert "NON_UUID_ID" in codes

    def test_findings_render_as_text(self, make_workflow):
        workflow = make_workflow("Only", first_type="n8n-nodes-base.set")
        finding = validate_workflow(workflow, label="module Sync")[0]
        assert str(finding) == "NO_TRIGGER at $.nodes: Workflow may not have a trigger node"


class TestTriggerDetection:
    """Trigger node type detection."""

    @pytest.mark.parametrize("node_type", [
        "n8n-nodes-base.webhook",
        "n8n-nodes-base.manualTrigger",
        "n8n-nodes-base.scheduleTrigger",
        "n8n-nodes-base.shopifyTrigger",
        "@n8n/n8n-nodes-langchain.chatTrigger",
    ])
    def test_trigger_types(self, node_type):
        assert is_trigger_type(node_type) is True

    @pytest.mark.parametrize("node_type", ["n8n-nodes-base.set", "n8n-nodes-base.httpRequest", None])
    def test_non_trigger_types(self, node_type):
        assert is_trigger_type(node_type) is False

    def test_validator_class_delegates(self, sample_workflow):
        assert WorkflowValidator().validate(sample_workflow, "final workflow") == []
