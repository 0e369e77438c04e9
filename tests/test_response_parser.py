"""
Tests for JSON candidate extraction from raw Claude responses.
"""
import pytest

from services.workflow_builder.response_parser import (
    ARCHITECT_STRATEGIES,
    ASSEMBLER_STRATEGIES,
    MODULE_STRATEGIES,
    ResponseParser,
    anchored_object,
    extract_any_fence,
    extract_json_candidate,
    extract_tagged_fence,
    greedy_object,
)


class TestFenceExtraction:
    """Fenced code blocks."""

    def test_tagged_fence(self):
        text = 'Sure!\n```json\n{"title": "A"}\n```\nLet me know.'
        assert extract_tagged_fence(text) == '{"title": "A"}'

    def test_tagged_fence_is_preferred_over_earlier_untagged(self):
        text = '```\nnot json\n```\n```json\n{"a": 1}\n```'
        assert extract_json_candidate(text, ARCHITECT_STRATEGIES) == '{"a": 1}'

    def test_untagged_fence(self):
        text = 'Result:\n```\n{"nodes": [], "connections": {}}\n```'
        assert extract_tagged_fence(text) is None
        assert extract_any_fence(text) == '{"nodes": [], "connections": {}}'

    def test_untagged_fence_without_object_is_ignored(self):
        assert extract_any_fence("```\nplain text\n```") is None


class TestObjectScans:
    """Scans over bare JSON in prose."""

    def test_anchored_object_requires_keys_in_order(self):
        strategy = anchored_object("title", "modules")
        text = 'Plan: {"title": "T", "modules": [{"name": "M"}]} done'

        assert strategy(text) == '{"title": "T", "modules": [{"name": "M"}]}'
        assert strategy('{"modules": [], "title": "T"}') is None

    def test_anchored_object_without_brace(self):
        assert anchored_object("nodes")('"nodes": []') is None

    def test_greedy_object_keeps_unterminated_tail(self):
        text = 'Here you go: {"nodes": [{"id": "a"'
        assert greedy_object(text) == '{"nodes": [{"id": "a"'

    def test_greedy_object_cuts_trailing_prose(self):
        text = '{"nodes": [], "connections": {}} Hope this helps!'
        assert greedy_object(text) == '{"nodes": [], "connections": {}}'


class TestStageStrategies:
    """Which strategies each stage gets."""

    def test_module_stage_has_no_greedy_fallback(self):
        text = 'Output: {"name": "only a name"'
        assert extract_json_candidate(text, MODULE_STRATEGIES) is None
        assert extract_json_candidate(text, ASSEMBLER_STRATEGIES) == '{"name": "only a name"'

    @pytest.mark.parametrize("text", ["", "no json here at all"])
    def test_nothing_found(self, text):
        assert extract_json_candidate(text, ASSEMBLER_STRATEGIES) is None


class TestResponseParser:
    """The parser wrapper used by the stages."""

    def test_extract_then_repair(self):
        parser = ResponseParser(MODULE_STRATEGIES, max_input_chars=10_000)
        candidate = parser.extract('```json\n{"nodes": [1, 2,], "connections": {}}\n```')
        result = parser.repair(candidate)

        assert result.success is True
        assert result.data == {"nodes": [1, 2], "connections": {}}
        assert result.repair_applied == "trailing-comma"

    def test_add_strategy_runs_last(self):
        parser = ResponseParser([extract_tagged_fence], max_input_chars=10_000)
        parser.add_strategy(lambda text: '{"fallback": true}')

        assert parser.extract("nothing fenced") == '{"fallback": true}'
