"""
Response Parser for the Enterprise Workflow Builder

Locates the JSON payload embedded in a raw Claude response. Each extraction
strategy is a pure function ``text -> Optional[str]``; a stage runs its own
ordered list and the first strategy that finds a candidate wins.
"""

import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple

from .json_repair import RepairResult, repair_json

logger = logging.getLogger(__name__)

ExtractionStrategy = Callable[[str], Optional[str]]

_TAGGED_FENCE = re.compile(r"```json[ \t]*\r?\n(.+?)\r?\n?```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[^\n`]*\r?\n?(.+?)\r?\n?```", re.DOTALL)


def _non_blank(candidate: Optional[str]) -> Optional[str]:
    if candidate is None or not candidate.strip():
        return None
    return candidate.strip()


def extract_tagged_fence(text: str) -> Optional[str]:
    """Body of the first fenced block tagged as JSON"""
    match = _TAGGED_FENCE.search(text)
    return _non_blank(match.group(1)) if match else None


def extract_any_fence(text: str) -> Optional[str]:
    """Body of the first fenced block, whatever its language tag"""
    match = _ANY_FENCE.search(text)
    if not match:
        return None
    body = _non_blank(match.group(1))
    if body and "{" not in body:
        return None
    return body


def anchored_object(*anchors: str) -> ExtractionStrategy:
    """
    Build a strategy that captures from the first ``{`` to the last ``}``,
    provided every anchor key appears between them in the given order.
    """
    quoted = [f'"{anchor}"' for anchor in anchors]

    def extract(text: str) -> Optional[str]:
        start = text.find("{")
        if start == -1:
            return None
        position = start
        for anchor in quoted:
            position = text.find(anchor, position)
            if position == -1:
                return None
            position += len(anchor)
        end = text.rfind("}")
        if end < position:
            return None
        return text[start:end + 1]

    extract.__name__ = f"anchored_object({', '.join(anchors)})"
    return extract


def greedy_object(text: str) -> Optional[str]:
    """
    Everything from the first ``{``, cut after the last ``}`` when there is one.
    Keeps an unterminated tail so truncated output can still be repaired.
    """
    start = text.find("{")
    if start == -1:
        return None
    candidate = text[start:]
    end = candidate.rfind("}")
    if end != -1:
        candidate = candidate[:end + 1]
    return _non_blank(candidate)


ARCHITECT_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    extract_tagged_fence,
    extract_any_fence,
    anchored_object("title", "modules"),
)

MODULE_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    extract_tagged_fence,
    extract_any_fence,
    anchored_object("nodes", "connections"),
)

ASSEMBLER_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    extract_tagged_fence,
    extract_any_fence,
    anchored_object("nodes", "connections"),
    greedy_object,
)


def extract_json_candidate(text: str, strategies: Sequence[ExtractionStrategy]) -> Optional[str]:
    """Run the extraction strategies in order and return the first candidate"""
    if not text:
        return None
    for strategy in strategies:
        candidate = strategy(text)
        if candidate is not None:
            logger.debug(f"Extracted JSON candidate with {getattr(strategy, '__name__', strategy)} "
                         f"({len(candidate)} chars)")
            return candidate
    return None


class ResponseParser:
    """
    Turns raw Claude responses into parsed JSON objects.

    Responsibilities:
    - Running a stage's extraction strategies
    - Handing the isolated candidate to the repair engine
    """

    def __init__(self, strategies: Sequence[ExtractionStrategy], max_input_chars: int):
        self.strategies: List[ExtractionStrategy] = list(strategies)
        self.max_input_chars = max_input_chars

    def add_strategy(self, strategy: ExtractionStrategy):
        """Append an extraction heuristic after the existing ones"""
        self.strategies.append(strategy)

    def extract(self, response_text: str) -> Optional[str]:
        return extract_json_candidate(response_text, self.strategies)

    def repair(self, candidate: str) -> RepairResult:
        return repair_json(candidate, max_input_chars=self.max_input_chars)
