"""
Pytest configuration and fixtures for the enterprise workflow builder tests.
"""
import json
import sys
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from api.main import app  # noqa: E402
from api.routes.enterprise import get_workflow_builder  # noqa: E402
from services.workflow_builder.ai_client import LLMResponse  # noqa: E402
from services.workflow_builder.generator import EnterpriseWorkflowBuilder  # noqa: E402


class FakeLLMClient:
    """
    Scripted stand-in for AIClient.

    Each queued item is returned by one complete() call, in order: a str
    becomes an end_turn response, an LLMResponse is returned as-is and an
    exception is raised.
    """

    claude_model = "fake-claude"

    def __init__(self, responses=()):
        self.responses = list(responses)
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)
        return self

    async def complete(self, system_prompt, user_prompt, max_tokens, temperature, stage=None):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "stage": stage,
        })
        if not self.responses:
            raise AssertionError(f"Unexpected LLM call for stage {stage}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, LLMResponse):
            return item
        return LLMResponse(text=item, stop_reason="end_turn", model=self.claude_model)


def build_workflow(*names, name="Test Workflow", first_type="n8n-nodes-base.webhook"):
    """A valid linear workflow whose nodes are chained in the given order"""
    nodes = []
    for index, node_name in enumerate(names):
        nodes.append({
            "id": str(uuid.UUID(int=index + 1)),
            "name": node_name,
            "type": first_type if index == 0 else "n8n-nodes-base.set",
            "typeVersion": 1,
            "position": [250 + 200 * index, 300],
            "parameters": {}
        })
    connections = {
        names[i]: {"main": [[{"node": names[i + 1], "type": "main", "index": 0}]]}
        for i in range(len(names) - 1)
    }
    return {"name": name, "nodes": nodes, "connections": connections, "settings": {}}


def fenced(payload) -> str:
    """Wrap an object the way Claude usually answers: prose plus a json fence"""
    return f"Here is the result:\n\n```json\n{json.dumps(payload, indent=2)}\n```\n"


def build_blueprint(*modules, title="Order Sync", total=None):
    blueprint = {
        "title": title,
        "description": "Sync orders into the CRM and notify the team",
        "modules": [
            {
                "name": module_name,
                "description": f"{module_name} module",
                "estimatedNodes": 10,
                "integrations": ["shopify", "hubspot"],
                "dependencies": []
            }
            for module_name in modules
        ],
        "dataFlow": "Orders flow from Shopify into HubSpot, then Slack is notified",
        "errorHandling": "Retry failed CRM writes and alert on repeated failures"
    }
    if total is not None:
        blueprint["estimatedTotalNodes"] = total
    return blueprint


@pytest.fixture
def fake_llm():
    """An empty scripted LLM client; tests queue responses on it."""
    return FakeLLMClient()


@pytest.fixture
def make_workflow():
    return build_workflow


@pytest.fixture
def make_blueprint():
    return build_blueprint


@pytest.fixture
def as_fenced():
    return fenced


@pytest.fixture
def sample_workflow():
    """Minimal valid two-node workflow."""
    return build_workflow("Webhook", "Set Fields")


@pytest.fixture
def recorded_sleeps():
    """Sleep replacement that records delays instead of waiting."""
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    fake_sleep.delays = delays
    return fake_sleep


@pytest.fixture
def builder(fake_llm, recorded_sleeps):
    """Pipeline wired to the fake LLM with sleeps recorded, not awaited."""
    return EnterpriseWorkflowBuilder(llm_client=fake_llm, module_delay_seconds=12.0, sleep=recorded_sleeps)


@pytest.fixture
def test_client():
    """Create a test client for the FastAPI application."""
    return TestClient(app)


@pytest.fixture
def api_client(builder):
    """Test client whose generation endpoint uses the fake-backed builder."""
    app.dependency_overrides[get_workflow_builder] = lambda: builder
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
