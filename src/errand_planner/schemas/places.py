"""Place lookup request schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from .errands import CoordinatesModel


class DisambiguateRequest(BaseModel):
    query: str = Field(..., min_length=1, description="What the user asked for, e.g. 'Starbucks'.")
    candidates: List[str] = Field(..., min_length=1, description="Place ids to choose between.")
    origin: Optional[CoordinatesModel] = Field(
        default=None,
        description="When given, the closest candidate is recommended; otherwise the highest rated.",
    )
