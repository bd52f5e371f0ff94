"""Graph rendering configuration."""

from pydantic import BaseModel, Field


class GraphConfig(BaseModel):
    """Configuration for the graph transformer."""

    max_label_length: int = Field(
        default=25,
        ge=4,
        description="Node labels longer than this are truncated with '...'",
    )
    root_label: str = Field(default="User", description="Label of the root user node")
