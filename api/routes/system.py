"""
System routes for health checks and rate limiter status.
"""

from datetime import datetime, timezone
from typing import Any, Dict
import logging

from fastapi import APIRouter

from core.config import settings
from services.workflow_builder.example_catalog import get_all_examples
from services.workflow_builder.rate_limiter import get_global_rate_limiter

logger = logging.getLogger(__name__)
router = APIRouter(tags=["System"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": _timestamp(),
        "version": "1.0.0",
        "llm_configured": bool(settings.anthropic_api_key),
        "model": settings.anthropic_model,
        "reference_examples": len(get_all_examples())
    }


@router.get("/system/rate-limiting/status")
async def get_rate_limiting_status() -> Dict[str, Any]:
    """Current state of the process-wide Claude rate limiter"""
    return {
        "status": "success",
        "rate_limiting": get_global_rate_limiter().get_stats(),
        "timestamp": _timestamp()
    }
