"""
Templates package for the enterprise workflow pipeline prompts.
"""

from .stage_prompts import (
    N8N_KNOWLEDGE_BASE,
    ARCHITECT_USER_PROMPT,
    ARCHITECT_EXAMPLE_SECTION,
    MODULE_USER_PROMPT,
    MODULE_EXAMPLE_SECTION,
    ASSEMBLER_SYSTEM_PROMPT,
    ASSEMBLER_USER_PROMPT,
    ASSEMBLER_MODULE_SECTION,
    render_architect_system_prompt,
    render_module_system_prompt,
)

__all__ = [
    'N8N_KNOWLEDGE_BASE',
    'ARCHITECT_USER_PROMPT',
    'ARCHITECT_EXAMPLE_SECTION',
    'MODULE_USER_PROMPT',
    'MODULE_EXAMPLE_SECTION',
    'ASSEMBLER_SYSTEM_PROMPT',
    'ASSEMBLER_USER_PROMPT',
    'ASSEMBLER_MODULE_SECTION',
    'render_architect_system_prompt',
    'render_module_system_prompt',
]
