"""
Tests for the FastAPI routes.
"""
from services.workflow_builder.errors import UpstreamCallError


class TestSystemEndpoints:
    """Root, health and rate limiter status."""

    def test_root_endpoint(self, test_client):
        response = test_client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["message"] == "Enterprise Workflow Builder API"
        assert data["docs"] == "/docs"

    def test_health_check(self, test_client):
        response = test_client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["reference_examples"] == 14
        assert "timestamp" in data
        assert "llm_configured" in data

    def test_rate_limiting_status(self, test_client):
        response = test_client.get("/system/rate-limiting/status")
        assert response.status_code == 200
        assert "current_state" in response.json()["rate_limiting"]

    def test_request_id_is_echoed(self, test_client):
        response = test_client.get("/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"
        assert response.headers["X-Response-Time"].endswith("ms")


class TestReferenceExamples:
    """Catalog browsing endpoints."""

    def test_list_all(self, test_client):
        data = test_client.get("/enterprise/examples").json()

        assert data["total"] == 14
        assert "content" not in data["examples"][0]
        assert {"name", "category", "complexity", "node_count"} <= set(data["examples"][0])

    def test_filter_by_category(self, test_client):
        data = test_client.get("/enterprise/examples", params={"category": "Project Management"}).json()
        assert [example["name"] for example in data["examples"]] == [
            "Asana to Notion Sync",
            "Jira Ticket Management",
        ]

    def test_filter_by_complexity(self, test_client):
        data = test_client.get("/enterprise/examples", params={"complexity": "complex"}).json()

        assert data["total"] == 4
        assert {example["complexity"] for example in data["examples"]} == {"complex"}
        assert {example["name"]: example["node_count"] for example in data["examples"]}["Social Media Automation"] == 60

    def test_filter_by_category_and_complexity(self, test_client):
        params = {"category": "Marketing", "complexity": "complex"}
        data = test_client.get("/enterprise/examples", params=params).json()
        assert [example["name"] for example in data["examples"]] == ["Social Media Automation"]

    def test_unknown_complexity_is_rejected(self, test_client):
        response = test_client.get("/enterprise/examples", params={"complexity": "enormous"})
        assert response.status_code == 422

    def test_include_content(self, test_client):
        data = test_client.get("/enterprise/examples", params={"include_content": "true"}).json()
        assert all("nodes" in example["content"] for example in data["examples"])

    def test_relevant_examples(self, test_client):
        response = test_client.get("/enterprise/examples/relevant", params={"q": "shopify hubspot", "limit": 2})
        assert response.status_code == 200

        data = response.json()
        assert data["keywords"] == ["hubspot", "shopify"]
        assert len(data["examples"]) == 2
        assert data["examples"][0]["name"] == "Shopify to HubSpot Sync"

    def test_relevant_examples_validation(self, test_client):
        assert test_client.get("/enterprise/examples/relevant").status_code == 422
        assert test_client.get("/enterprise/examples/relevant", params={"q": "x", "limit": 11}).status_code == 422


class TestGenerateWorkflow:
    """POST /enterprise/workflows with a scripted LLM behind the builder."""

    def test_successful_generation(self, api_client, fake_llm, as_fenced, make_blueprint, make_workflow):
        fake_llm.queue(
            as_fenced(make_blueprint("Order Intake")),
            as_fenced(make_workflow("Shopify Trigger", "Map Order")),
            as_fenced(make_workflow("Shopify Trigger", "Map Order", "Notify Slack", name="Order Sync")),
        )

        response = api_client.post("/enterprise/workflows", json={
            "description": "Sync new Shopify orders to HubSpot and notify Slack",
            "integrations": ["shopify", "hubspot", "slack"],
            "workflowType": "complex_integration",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["blueprint"]["title"] == "Order Sync"
        assert len(data["finalWorkflow"]["nodes"]) == 3
        assert data["creditsUsed"] == 12
        assert data["setupInstructions"].startswith("# Setup Instructions")
        assert data["modules"][0]["name"] == "Order Intake"

    def test_invalid_request_body(self, api_client, fake_llm):
        response = api_client.post("/enterprise/workflows", json={"integrations": ["slack"]})

        assert response.status_code == 422
        assert fake_llm.calls == []

    def test_stage_failure_maps_to_422(self, api_client, fake_llm, as_fenced, make_blueprint):
        fake_llm.queue(as_fenced(make_blueprint("Order Intake")), "I cannot build that module.")

        response = api_client.post("/enterprise/workflows", json={"description": "Sync orders"})

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["stage"] == "module"
        assert detail["kind"] == "extraction"
        assert detail["module"] == "Order Intake"
        assert detail["completed_modules"] == []
        assert "I cannot build that module." in detail["raw_excerpt"]

    def test_upstream_failure_maps_to_502(self, api_client, fake_llm):
        fake_llm.queue(UpstreamCallError("Claude API returned HTTP 503", status_code=503, retryable=True))

        response = api_client.post("/enterprise/workflows", json={"description": "Sync orders"})

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["stage"] == "architect"
        assert detail["kind"] == "upstream"
