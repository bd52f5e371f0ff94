"""Context serialization configuration."""

from pydantic import BaseModel, Field


class ContextConfig(BaseModel):
    """Configuration for the context serializer."""

    negative_sentiment_threshold: float = Field(
        default=-0.3,
        ge=-1.0,
        le=1.0,
        description="Sentiment scores below this trigger the resolution guidance",
    )
