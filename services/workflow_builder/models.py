"""
Data models for the enterprise workflow builder.

Blueprint and workflow models mirror the camelCase JSON the LLM is asked to
produce; both the alias and the field name are accepted on input.
"""

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_MODULE_NODES = 10


class WorkflowType(str, Enum):
    """Broad shape of the requested automation"""
    MULTI_DEPARTMENT = "multi_department"
    CUSTOMER_JOURNEY = "customer_journey"
    DATA_PIPELINE = "data_pipeline"
    COMPLEX_INTEGRATION = "complex_integration"


class Complexity(str, Enum):
    """Complexity tier of a reference workflow"""
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class WorkflowRequest(BaseModel):
    """Caller-supplied generation request"""

    model_config = ConfigDict(populate_by_name=True)

    description: str = Field(
        ...,
        min_length=1,
        description="Natural language description of the desired workflow"
    )
    workflow_type: Optional[WorkflowType] = Field(
        default=None,
        alias="workflowType",
        description="Optional hint about the kind of workflow"
    )
    departments: List[str] = Field(
        default_factory=list,
        description="Departments involved in the workflow"
    )
    integrations: List[str] = Field(
        default_factory=list,
        description="Integrations the workflow is expected to use"
    )
    estimated_nodes: Optional[int] = Field(
        default=None,
        alias="estimatedNodes",
        ge=1,
        description="Caller's rough estimate of the final node count"
    )


class ReferenceExample(BaseModel):
    """Catalog entry used to ground LLM calls"""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    keywords: Tuple[str, ...]
    category: str
    complexity: Complexity
    content: Dict[str, Any]
    node_count: int


class ModuleSpec(BaseModel):
    """One module of the architect's blueprint"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1)
    description: str = ""
    estimated_nodes: int = Field(default=DEFAULT_MODULE_NODES, alias="estimatedNodes", ge=0)
    integrations: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)


class Blueprint(BaseModel):
    """Architectural plan produced before any graph nodes are generated"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(..., min_length=1)
    description: str = ""
    modules: List[ModuleSpec] = Field(..., min_length=1)
    data_flow: str = Field(default="", alias="dataFlow")
    error_handling: Optional[str] = Field(default=None, alias="errorHandling")
    estimated_total_nodes: int = Field(default=0, alias="estimatedTotalNodes", ge=0)

    @model_validator(mode="before")
    @classmethod
    def _default_total_nodes(cls, data: Any) -> Any:
        if isinstance(data, dict) and not (data.get("estimatedTotalNodes") or data.get("estimated_total_nodes")):
            modules = data.get("modules") or []
            if not isinstance(modules, (list, tuple)):
                return data
            total = 0
            for module in modules:
                if isinstance(module, dict):
                    estimate = module.get("estimatedNodes", module.get("estimated_nodes", DEFAULT_MODULE_NODES))
                    if isinstance(estimate, (int, float)) and not isinstance(estimate, bool):
                        total += int(estimate)
                elif isinstance(module, ModuleSpec):
                    total += module.estimated_nodes
            data = {**data, "estimatedTotalNodes": total}
        return data


class WorkflowNode(BaseModel):
    """A single node of a workflow graph"""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str
    type: str
    position: Tuple[float, float]
    type_version: Union[int, float] = Field(default=1, alias="typeVersion")
    parameters: Dict[str, Any] = Field(default_factory=dict)


class WorkflowGraph(BaseModel):
    """Nodes plus a connection map keyed by source-node name"""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = "Generated Workflow"
    nodes: List[WorkflowNode]
    connections: Dict[str, Any]
    settings: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("settings", mode="before")
    @classmethod
    def _null_settings(cls, value: Any) -> Any:
        return {} if value is None else value

    def node_names(self) -> List[str]:
        return [node.name for node in self.nodes]

    def iter_connections(self) -> Iterator[Tuple[str, str, str, int]]:
        """Yield (source, target, input slot, input index) for every connection"""
        yield from iter_connection_targets(self.connections)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def iter_connection_targets(connections: Any) -> Iterator[Tuple[str, str, str, int]]:
    """Walk an n8n-shaped connection map, skipping entries that are not well formed"""
    if not isinstance(connections, dict):
        return
    for source, outputs in connections.items():
        if not isinstance(outputs, dict):
            continue
        for output_type, branches in outputs.items():
            if not isinstance(branches, list):
                continue
            for branch in branches:
                if not isinstance(branch, list):
                    continue
                for target in branch:
                    if isinstance(target, dict) and target.get("node"):
                        yield (
                            source,
                            target["node"],
                            target.get("type", output_type),
                            target.get("index", 0),
                        )


class GeneratedModule(BaseModel):
    """A module spec paired with the graph fragment generated for it"""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    estimated_nodes: int = Field(default=0, alias="estimatedNodes")
    integrations: List[str] = Field(default_factory=list)
    workflow: WorkflowGraph


class EnterpriseWorkflowResult(BaseModel):
    """Everything a successful pipeline run hands back to the caller"""

    model_config = ConfigDict(populate_by_name=True)

    blueprint: Blueprint
    modules: List[GeneratedModule]
    final_workflow: WorkflowGraph = Field(..., alias="finalWorkflow")
    setup_instructions: str = Field(..., alias="setupInstructions")
    credits_used: int = Field(..., alias="creditsUsed")
    validation_warnings: List[str] = Field(default_factory=list, alias="validationWarnings")
    metadata: Dict[str, Any] = Field(default_factory=dict)
