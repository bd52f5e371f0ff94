"""Composite state projection defaults."""

from pydantic import BaseModel, Field


class ProjectionConfig(BaseModel):
    """Defaults used when the store holds no fact for a telecom field."""

    home_market: str = Field(
        default="Singapore",
        description="Home market of every subscriber",
    )
    default_plan: str = Field(
        default="Standard Plan",
        description="Plan reported when no ACTIVE_PLAN fact exists",
    )
    unknown_msisdn: str = Field(
        default="+65XXXXXXXX",
        description="MSISDN placeholder when no ACTIVE_MSISDN fact exists",
    )
