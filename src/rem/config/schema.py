"""Pydantic v2 model for rem configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_HISTORY_LIMIT = 20
MAX_HISTORY_LIMIT = 1000


class RemConfig(BaseModel):
    """Root configuration model for rem."""

    history_limit: int = Field(default=DEFAULT_HISTORY_LIMIT, gt=0, le=MAX_HISTORY_LIMIT)
    history_location: str = ""
    show_binary: bool = False

    model_config = {"validate_assignment": True}
