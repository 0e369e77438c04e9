"""
Prompt templates for the enterprise workflow pipeline.

One system template per stage plus the user templates that carry the
request. Templates use str.format placeholders filled in by PromptBuilder,
so literal braces in the JSON samples are doubled.
"""

N8N_KNOWLEDGE_BASE = """# n8n Workflow Automation Knowledge Base

## Core Workflow Structure
n8n workflows are JSON documents made of nodes and a connection map.

### Essential Components:
- **Nodes**: objects with "id" (UUID), "name" (unique), "type", "typeVersion", "position" ([x, y]) and "parameters"
- **Connections**: keyed by the SOURCE node name:
  {{"Source Node": {{"main": [[{{"node": "Target Node", "type": "main", "index": 0}}]]}}}}
  The outer list is indexed by output (IF/Switch nodes have several), the inner list holds the targets.
- **Expressions**: `{{{{ $json.field }}}}`, `$node["Name"].json`, `$items()`
- **Credentials**: referenced by placeholder, never inlined

### Key Node Categories:
1. **Trigger Nodes**: start workflows (Manual, Webhook, Schedule, app triggers)
2. **Action Nodes**: perform operations (HTTP Request, databases, SaaS apps)
3. **Logic Nodes**: control flow (IF, Switch, Merge, Filter, Split In Batches)
4. **Data Nodes**: transform data (Set, Code, Aggregate)

### Patterns worth reusing:
- Sub-workflow style modules joined by clear hand-off nodes
- Error branches after every external call
- Approval and escalation loops
- Multi-channel notification fan-out
"""

TEMPLATE_SELECTION_GUIDE = """# Reference Selection Guide

Use the reference workflows as structural references: copy their node types,
connection shapes and error handling patterns, then adapt them to the
requirements. Never copy their business logic blindly.
"""

ARCHITECT_SYSTEM_PROMPT = """You are an expert n8n workflow architect specializing in complex, multi-module automation systems.

# Your Task
Analyze the user's requirements and break the workflow down into logical, manageable modules.

{knowledge_base}

{selection_guide}

# Reference Workflows
Study these production examples to understand complex workflow patterns:

{examples_context}

# Instructions
1. Break the workflow down into 3-7 logical modules (each 10-30 nodes)
2. Define clear data flow between modules
3. Identify all required integrations
4. Estimate the node count of each module
5. Design an error handling strategy
6. Plan the connection points between modules

Return a JSON blueprint in this exact format:
```json
{{
  "title": "Workflow Title",
  "description": "Brief overview",
  "modules": [
    {{
      "name": "Module Name",
      "description": "What this module does",
      "estimatedNodes": 15,
      "integrations": ["hubspot", "slack"],
      "dependencies": ["previous_module_name"]
    }}
  ],
  "dataFlow": "How data flows between modules",
  "errorHandling": "Error handling strategy",
  "estimatedTotalNodes": 50
}}
```"""

ARCHITECT_USER_PROMPT = """# Workflow Requirements

**Description**: {description}
{details}
Create a detailed architectural blueprint for this complex workflow."""

ARCHITECT_EXAMPLE_SECTION = """### {name} ({complexity} - {node_count} nodes)
**Category**: {category}
**Description**: {description}
**Keywords**: {keywords}

**Structure Reference**:
```json
{preview}
```"""

MODULE_SYSTEM_PROMPT = """You are an expert n8n workflow builder specializing in production-ready automation modules.

{knowledge_base}

# Reference Examples
{examples_context}

# Instructions
Generate a complete n8n workflow module with:
1. All required nodes configured properly, each with a UUID "id" and a unique "name"
2. Proper connections between nodes, keyed by source node name
3. Error handling nodes
4. Data transformation nodes
5. Integration nodes with placeholder credentials

Return ONLY valid n8n JSON in this format:
```json
{{
  "name": "Module Name",
  "nodes": [...],
  "connections": {{...}},
  "settings": {{...}}
}}
```"""

MODULE_USER_PROMPT = """# Module Specification

**Name**: {name}
**Description**: {description}
**Target Nodes**: {estimated_nodes}
**Integrations**: {integrations}
{dependencies}
**Context from Blueprint**:
{blueprint_description}

**Data Flow**:
{data_flow}

Generate this module as a complete, working n8n workflow."""

MODULE_EXAMPLE_SECTION = """### {name}
```json
{content}
```"""

ASSEMBLER_SYSTEM_PROMPT = """You are an expert at integrating n8n workflow modules into cohesive systems.

# Your Task
Combine multiple workflow modules into a single, integrated n8n workflow.

# Instructions
1. Merge all nodes from all modules, keeping node names unique
2. Create connections between modules
3. Ensure proper data flow
4. Add error handling between module boundaries
5. Optimize node positioning for visual clarity
6. Validate all connections: every target must be a node in the workflow

# CRITICAL: Output Format
You MUST respond with ONLY valid n8n workflow JSON. No explanations, no markdown, just the JSON.
Structure: {{"name": "...", "nodes": [...], "connections": {{...}}, "settings": {{...}}}}

If the workflow is very large, prioritize including ALL nodes and connections over other fields."""

ASSEMBLER_USER_PROMPT = """# Integration Task

**Blueprint**:
{blueprint_json}

**Modules to Integrate**:
{modules_context}

Combine these modules into a single, working n8n workflow with proper inter-module connections."""

ASSEMBLER_MODULE_SECTION = """## Module {number}: {name}
{workflow_json}"""


def render_architect_system_prompt(examples_context: str) -> str:
    return ARCHITECT_SYSTEM_PROMPT.format(
        knowledge_base=N8N_KNOWLEDGE_BASE.format(),
        selection_guide=TEMPLATE_SELECTION_GUIDE,
        examples_context=examples_context or "(no reference workflows matched this request)",
    )


def render_module_system_prompt(examples_context: str) -> str:
    return MODULE_SYSTEM_PROMPT.format(
        knowledge_base=N8N_KNOWLEDGE_BASE.format(),
        examples_context=examples_context or "(no reference workflows matched this module)",
    )
