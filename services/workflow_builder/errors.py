"""
Exceptions raised by the enterprise workflow builder.

Every failure of a pipeline run reaches the caller as a single
WorkflowGenerationError; the other classes are raised by lower layers and
chained as its cause.
"""

from enum import Enum
from typing import List, Optional, Sequence


class WorkflowBuilderError(Exception):
    """Base class for workflow builder errors"""
    pass


class UpstreamCallError(WorkflowBuilderError):
    """The LLM call itself failed (auth, rate limit, server error, timeout)"""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class WorkflowValidationError(WorkflowBuilderError):
    """A parsed workflow is missing required structural fields"""

    def __init__(self, message: str, path: str = "$"):
        super().__init__(message)
        self.path = path


class FailureKind(str, Enum):
    """Why a stage failed"""
    EXTRACTION = "extraction"
    TRUNCATED = "truncated"
    MALFORMED = "malformed"
    VALIDATION = "validation"
    UPSTREAM = "upstream"
    CANCELLED = "cancelled"


class WorkflowGenerationError(WorkflowBuilderError):
    """Typed failure of one pipeline stage; aborts the whole run"""

    def __init__(
        self,
        message: str,
        stage: str,
        kind: FailureKind,
        module_name: Optional[str] = None,
        raw_excerpt: Optional[str] = None,
        completed_modules: Sequence[str] = (),
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.kind = kind
        self.module_name = module_name
        self.raw_excerpt = raw_excerpt
        self.completed_modules: List[str] = list(completed_modules)

    @property
    def truncated(self) -> bool:
        return self.kind == FailureKind.TRUNCATED

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "stage": self.stage,
            "kind": self.kind.value,
            "module": self.module_name,
            "raw_excerpt": self.raw_excerpt,
            "completed_modules": list(self.completed_modules),
        }


class GenerationCancelledError(WorkflowGenerationError):
    """The caller cancelled the run before a stage boundary"""

    def __init__(self, stage: str, module_name: Optional[str] = None):
        where = f"{stage} ({module_name})" if module_name else stage
        super().__init__(
            f"Workflow generation was cancelled before {where}",
            stage=stage,
            kind=FailureKind.CANCELLED,
            module_name=module_name,
        )
