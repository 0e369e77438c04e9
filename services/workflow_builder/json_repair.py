"""
JSON Repair for LLM output

Recovers a JSON object from text that is almost, but not quite, valid JSON:
trailing commas, comments, and output cut off by the model's token budget.
Repair strategies are tried in order and the first one that yields a JSON
object wins; its name is reported so callers can log which path fired.

All scanning is string and escape aware, so brackets, commas and slashes
inside string values are never mistaken for structure.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_MAX_INPUT_CHARS = 5 * 1024 * 1024
MAX_SALVAGE_ATTEMPTS = 200

_CLOSERS = {"{": "}", "[": "]"}


class RepairStrategy(str, Enum):
    """Repair strategies, in the order they are attempted"""
    DIRECT_PARSE = "direct-parse"
    TRAILING_COMMA = "trailing-comma"
    COMMENT_STRIP = "comment-strip"
    BRACKET_BALANCE = "bracket-balance"
    TRUNCATION_SALVAGE = "truncation-salvage"


@dataclass
class RepairResult:
    """Outcome of repair_json"""
    success: bool
    data: Optional[Dict[str, Any]] = None
    strategy: Optional[RepairStrategy] = None
    error: Optional[str] = None
    truncated: bool = False

    @property
    def repair_applied(self) -> Optional[str]:
        """Name of the repair that fired, or None when the text parsed as-is"""
        if self.strategy is None or self.strategy == RepairStrategy.DIRECT_PARSE:
            return None
        return self.strategy.value


@dataclass
class _ScanState:
    stack: List[str] = field(default_factory=list)
    in_string: bool = False
    mismatched: bool = False
    # (cut index, brackets still open at that cut)
    boundaries: List[Tuple[int, Tuple[str, ...]]] = field(default_factory=list)


def _scan(text: str) -> _ScanState:
    """Track bracket nesting outside strings and record element boundaries"""
    state = _ScanState()
    escape = False

    for i, ch in enumerate(text):
        if state.in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                state.in_string = False
            continue

        if ch == '"':
            state.in_string = True
        elif ch in "{[":
            state.stack.append(ch)
        elif ch in "}]":
            if not state.stack or _CLOSERS[state.stack[-1]] != ch:
                state.mismatched = True
                return state
            state.stack.pop()
            state.boundaries.append((i + 1, tuple(state.stack)))
        elif ch == "," and state.stack:
            state.boundaries.append((i, tuple(state.stack)))

    return state


def _closers_for(stack) -> str:
    return "".join(_CLOSERS[opener] for opener in reversed(stack))


def _strip_trailing_commas(text: str) -> str:
    """Drop commas that are followed (after whitespace) by a closing bracket"""
    out: List[str] = []
    pending_comma: Optional[int] = None
    in_string = False
    escape = False

    for ch in text:
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            out.append(ch)
            continue

        if ch == '"':
            in_string = True
            pending_comma = None
        elif ch == ",":
            pending_comma = len(out)
        elif ch in "}]":
            if pending_comma is not None:
                out[pending_comma] = ""
                pending_comma = None
        elif not ch.isspace():
            pending_comma = None
        out.append(ch)

    return "".join(out)


def _strip_comments(text: str) -> str:
    """Remove // line comments and /* block */ comments outside strings"""
    out: List[str] = []
    in_string = False
    escape = False
    i = 0
    length = len(text)

    while i < length:
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            out.append(ch)
            i += 1
            continue

        if ch == '"':
            in_string = True
        elif ch == "/" and i + 1 < length and text[i + 1] in "/*":
            if text[i + 1] == "/":
                end = text.find("\n", i)
                i = length if end == -1 else end
            else:
                end = text.find("*/", i + 2)
                i = length if end == -1 else end + 2
            continue
        out.append(ch)
        i += 1

    return "".join(out)


def _without_dangling_comma(text: str) -> str:
    text = text.rstrip()
    if text.endswith(","):
        text = text[:-1].rstrip()
    return text


def _balance_brackets(text: str) -> Optional[str]:
    """Append the closers for any brackets left open at the end of the text"""
    state = _scan(text)
    if state.mismatched or state.in_string or not state.stack:
        return None
    return _without_dangling_comma(text) + _closers_for(state.stack)


def _salvage_truncated(text: str) -> Optional[str]:
    """
    Cut the text back to the last element boundary that still parses.

    Only text that ends mid-structure is cut. A syntax error inside otherwise
    complete JSON is left for the caller to report as malformed. Boundaries
    are tried from the end of the text backwards, so the first candidate that
    parses is the one that keeps the most data.
    """
    if not looks_truncated(text):
        return None
    state = _scan(text)
    for attempt, (cut, stack) in enumerate(reversed(state.boundaries)):
        if attempt >= MAX_SALVAGE_ATTEMPTS:
            logger.debug(f"Truncation salvage gave up after {MAX_SALVAGE_ATTEMPTS} attempts")
            break
        candidate = _without_dangling_comma(text[:cut]) + _closers_for(stack)
        if _parse_object(candidate)[0] is not None:
            return candidate
    return None


def _parse_object(text: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Parse text, returning (object, None) on success or (None, reason)"""
    try:
        parsed = json.loads(text)
    except ValueError as e:
        # JSONDecodeError, or an integer past the interpreter's digit limit
        return None, str(e)
    except RecursionError:
        return None, "JSON nesting too deep"
    if not isinstance(parsed, dict):
        return None, f"Expected a JSON object, got {type(parsed).__name__}"
    return parsed, None


def looks_truncated(text: str) -> bool:
    """True when the text ends inside a string or with brackets still open"""
    state = _scan(_strip_comments(text))
    if state.mismatched:
        return False
    return state.in_string or bool(state.stack)


# (strategy, transform, whether its output feeds the strategies after it)
_STRATEGIES: List[Tuple[RepairStrategy, Callable[[str], Optional[str]], bool]] = [
    (RepairStrategy.DIRECT_PARSE, lambda text: text, False),
    (RepairStrategy.TRAILING_COMMA, _strip_trailing_commas, True),
    (RepairStrategy.COMMENT_STRIP, lambda text: _strip_trailing_commas(_strip_comments(text)), True),
    (RepairStrategy.BRACKET_BALANCE, _balance_brackets, False),
    (RepairStrategy.TRUNCATION_SALVAGE, _salvage_truncated, False),
]


def repair_json(text: Optional[str], max_input_chars: int = DEFAULT_MAX_INPUT_CHARS) -> RepairResult:
    """
    Recover a JSON object from near-valid text.

    Args:
        text: Candidate JSON text, already isolated from the surrounding prose
        max_input_chars: Inputs longer than this are rejected without parsing

    Returns:
        RepairResult tagged with the strategy that succeeded, or a failure whose
        ``truncated`` flag tells whether the text looks cut off by a token limit
    """
    if text is None or not text.strip():
        return RepairResult(success=False, error="Empty JSON payload")

    if len(text) > max_input_chars:
        return RepairResult(
            success=False,
            error=f"JSON payload too large ({len(text)} chars, limit {max_input_chars})"
        )

    current = text.strip()
    last_error: Optional[str] = None

    for strategy, transform, feeds_forward in _STRATEGIES:
        candidate = transform(current)
        if candidate is None:
            continue

        data, error = _parse_object(candidate)
        if data is not None:
            if strategy != RepairStrategy.DIRECT_PARSE:
                logger.info(f"Recovered JSON using repair strategy: {strategy.value}")
            return RepairResult(success=True, data=data, strategy=strategy)

        last_error = error
        logger.debug(f"Repair strategy {strategy.value} failed: {error}")
        if feeds_forward:
            current = candidate

    if looks_truncated(current):
        state = _scan(current)
        detail = f"{len(state.stack)} unclosed bracket(s)"
        if state.in_string:
            detail += " and an unterminated string"
        return RepairResult(
            success=False,
            truncated=True,
            error=(
                f"JSON appears truncated (the response likely hit output token limits): "
                f"{detail}. Last parse error: {last_error}"
            )
        )

    return RepairResult(
        success=False,
        error=f"Malformed JSON that no repair strategy could fix: {last_error}"
    )
