"""
FastAPI application exposing the enterprise workflow builder.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import enterprise_router, system_router
from api.middleware import add_logging_middleware
from core.config import settings
from core.logging_config import configure_logging_from_settings, get_logger
from services.workflow_builder.example_catalog import get_all_examples

logger = get_logger(__name__)

app = FastAPI(
    title="Enterprise Workflow Builder API",
    description="Generates large, structurally valid n8n workflows from natural language "
                "through staged architect, module and assembly calls to Claude.",
    version="1.0.0",
    openapi_tags=[
        {
            "name": "Enterprise",
            "description": "Workflow generation and the reference workflow catalog"
        },
        {
            "name": "System",
            "description": "Health and rate limiting status"
        }
    ]
)


@app.on_event("startup")
async def startup_event():
    """Configure logging and warm the reference catalog"""
    configure_logging_from_settings()
    logger.info("🚀 Starting Enterprise Workflow Builder API...")

    examples = get_all_examples()
    logger.info(f"📚 Reference catalog ready: {len(examples)} workflows")

    if not settings.anthropic_api_key:
        logger.warning("⚠️  ANTHROPIC_API_KEY is not set - generation requests will fail")

    logger.info("🎉 API startup complete!")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("👋 Enterprise Workflow Builder API shutdown complete")


# Logging middleware first (for request tracking)
add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=False,  # Must be False when allow_origins=["*"]
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(enterprise_router)
app.include_router(system_router)


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Enterprise Workflow Builder API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc"
    }
