"""
Reference Workflow Catalog

A small curated set of production workflow graphs used to ground the LLM in
the node types and connection patterns of real automations. The catalog is
loaded once from the bundled data file and never mutated.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Sequence, Tuple

from .models import Complexity, ReferenceExample

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).parent / "data" / "reference_workflows.json"

INTEGRATION_KEYWORDS = (
    "hubspot", "shopify", "slack", "gmail", "sheets", "airtable", "notion",
    "asana", "jira", "github", "linkedin", "facebook", "instagram", "twitter",
    "whatsapp", "telegram", "mongodb", "openai", "langchain",
)

WORKFLOW_KEYWORDS = (
    "chatbot", "crm", "email", "lead", "customer", "order", "sync", "automation",
    "notification", "alert", "ai", "agent", "tracking", "monitoring", "project",
    "task", "ticket", "devops", "marketing", "social media", "onboarding",
)

KEYWORD_WEIGHT = 10
DESCRIPTION_WEIGHT = 5
CATEGORY_WEIGHT = 2


@lru_cache(maxsize=1)
def _load_catalog() -> Tuple[ReferenceExample, ...]:
    with CATALOG_PATH.open(encoding="utf-8") as f:
        raw_entries = json.load(f)

    examples = []
    for entry in raw_entries:
        content = entry["content"]
        examples.append(ReferenceExample(
            name=entry["name"],
            description=entry["description"],
            keywords=tuple(entry["keywords"]),
            category=entry["category"],
            complexity=Complexity(entry["complexity"]),
            content=content,
            node_count=entry.get("nodeCount") or len(content.get("nodes", [])),
        ))

    logger.info(f"Loaded {len(examples)} reference workflows from {CATALOG_PATH.name}")
    return tuple(examples)


def get_all_examples() -> List[ReferenceExample]:
    return list(_load_catalog())


def get_examples_by_category(category: str) -> List[ReferenceExample]:
    return [example for example in _load_catalog() if example.category == category]


def get_examples_by_complexity(complexity) -> List[ReferenceExample]:
    tier = Complexity(complexity)
    return [example for example in _load_catalog() if example.complexity == tier]


def extract_keywords(text: str) -> List[str]:
    """Vocabulary terms that occur anywhere in the text (case-insensitive)"""
    lowered = (text or "").lower()
    return [keyword for keyword in INTEGRATION_KEYWORDS + WORKFLOW_KEYWORDS if keyword in lowered]


def calculate_relevance_score(keywords: Sequence[str], example: ReferenceExample) -> int:
    """
    Score one catalog entry against the request keywords.

    Exact keyword hits weigh the most, then mentions in the description,
    then mentions in the category name.
    """
    description = example.description.lower()
    category = example.category.lower()
    score = 0
    for keyword in keywords:
        if keyword in example.keywords:
            score += KEYWORD_WEIGHT
        if keyword in description:
            score += DESCRIPTION_WEIGHT
        if keyword in category:
            score += CATEGORY_WEIGHT
    return score


def select_relevant_examples(request_text: str, max_count: int = 3) -> List[ReferenceExample]:
    """
    Pick the reference workflows most relevant to a request.

    Args:
        request_text: Free text to match (description, integrations, module name...)
        max_count: Maximum number of examples to return

    Returns:
        Up to max_count examples, best first. When none of the picks is a
        complex workflow, the best unused complex one replaces the last pick
        (or is appended when there is room) so the model always sees at least
        one large graph.
    """
    if max_count <= 0:
        return []

    keywords = extract_keywords(request_text)
    catalog = _load_catalog()
    scored = [(calculate_relevance_score(keywords, example), example) for example in catalog]
    # sorted() is stable, so ties keep catalog order
    ranked = sorted(scored, key=lambda pair: pair[0], reverse=True)

    selected = [example for score, example in ranked if score > 0][:max_count]

    if not any(example.complexity == Complexity.COMPLEX for example in selected):
        chosen = {example.name for example in selected}
        fallback = next(
            (example for _, example in ranked
             if example.complexity == Complexity.COMPLEX and example.name not in chosen),
            None
        )
        if fallback is not None:
            if len(selected) < max_count:
                selected.append(fallback)
            else:
                selected[-1] = fallback

    logger.debug(
        f"Selected reference workflows {[example.name for example in selected]} "
        f"for keywords {keywords}"
    )
    return selected
