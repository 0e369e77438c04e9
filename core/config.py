"""
Configuration settings for the enterprise workflow builder.
"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Anthropic API settings
    anthropic_api_key: Optional[str] = Field(
        default=None,
        description="Anthropic API key for Claude LLM access"
    )
    anthropic_base_url: str = Field(
        default="https://api.anthropic.com/v1/messages",
        description="Anthropic Messages API endpoint"
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Claude model used by every pipeline stage"
    )
    anthropic_version: str = Field(
        default="2023-06-01",
        description="Value of the anthropic-version header"
    )
    llm_timeout_seconds: float = Field(
        default=300.0,
        description="HTTP timeout for a single LLM call (assembly calls are long)"
    )
    llm_max_attempts: int = Field(
        default=3,
        description="Attempts for rate-limited or 5xx LLM calls before giving up"
    )

    # Claude API rate limiting
    claude_rate_limit_delay: float = Field(
        default=2.0,
        description="Base delay in seconds between Claude API retries"
    )
    max_rate_limit_delay: float = Field(
        default=30.0,
        description="Maximum delay in seconds between Claude API retries"
    )
    claude_requests_per_minute: int = Field(
        default=20,
        description="Process-wide request budget for the Claude API"
    )
    claude_burst_limit: int = Field(
        default=5,
        description="Requests allowed in a burst before the token bucket throttles"
    )

    # Stage budgets
    architect_max_tokens: int = Field(default=4096, description="Output token budget for the architect stage")
    architect_temperature: float = Field(default=0.7, description="Sampling temperature for the architect stage")
    module_max_tokens: int = Field(default=8192, description="Output token budget per generated module")
    module_temperature: float = Field(default=0.4, description="Sampling temperature for module generation")
    assembler_max_tokens: int = Field(default=32768, description="Output token budget for the assembly stage")
    assembler_temperature: float = Field(default=0.2, description="Sampling temperature for the assembly stage")

    # Pipeline settings
    module_delay_seconds: float = Field(
        default=12.0,
        description="Wait between consecutive module generation calls"
    )
    architect_example_count: int = Field(
        default=3,
        description="Reference workflows shown to the architect"
    )
    module_example_count: int = Field(
        default=2,
        description="Reference workflows shown to each module generation call"
    )
    example_preview_chars: int = Field(
        default=2000,
        description="Characters of each reference workflow shown to the architect"
    )
    max_repair_input_chars: int = Field(
        default=5 * 1024 * 1024,
        description="Raw LLM payloads above this size are rejected before repair"
    )

    # Credit estimation
    min_credits: int = Field(default=12, description="Lower bound of the credit estimate")
    max_credits: int = Field(default=18, description="Upper bound of the credit estimate")
    nodes_per_credit: int = Field(default=5, description="Estimated nodes covered by one credit")

    # Application settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Create global settings instance
settings = Settings()
