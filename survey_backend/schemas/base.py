"""Base schemas with common configuration."""
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer

from survey_backend.utils.datetime_helpers import isoformat_utc

# Completion timestamps are rendered as UTC with a 'Z' suffix so browsers parse them unambiguously
UTCDateTime = Annotated[datetime, PlainSerializer(isoformat_utc, return_type=str)]


class BaseSchema(BaseModel):
    """Base schema for survey API responses."""

    model_config = ConfigDict(
        from_attributes=True,
    )
