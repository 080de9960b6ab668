"""
Learning schemas.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from pricetalk.models.learning import ProgressStatus


class ProgressUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    status: ProgressStatus
    score: Optional[float] = Field(None, ge=0, le=100)
