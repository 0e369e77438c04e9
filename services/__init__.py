"""
Services package for the enterprise workflow builder.
"""

from .workflow_builder import EnterpriseWorkflowBuilder

__all__ = [
    "EnterpriseWorkflowBuilder",
]
