"""Live backend configuration models."""

from pydantic import BaseModel, Field


class BackendConfig(BaseModel):
    """Connection settings for the remote extraction backend."""

    base_url: str = Field(
        default="http://localhost:8002",
        description="Base URL of the context backend",
    )
    tenant_id: str = Field(default="sg", description="Tenant sent with every request")
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout",
    )
    settle_seconds: float = Field(
        default=0.0,
        ge=0,
        description="Wait after ingestion before reading state",
    )
    max_facts: int = Field(
        default=20,
        gt=0,
        description="Maximum facts requested when building context",
    )
