"""Configuration for the local store."""

from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, Field

from .backend import DEFAULT_QUOTA_BYTES


class Config(BaseModel):
    """Local configuration for this installation."""

    storage_dir: Path = Path.home() / ".cybershield" / "storage"
    quota_bytes: Annotated[int, Field(gt=0)] | None = DEFAULT_QUOTA_BYTES
    max_evidence_bytes: Annotated[int, Field(gt=0)] = 2 * 1024 * 1024
    evidence_max_side: Annotated[int, Field(gt=0)] = 1600
    visitor_active_minutes: Annotated[int, Field(gt=0)] = 5


def load_config(path: Path) -> Config:
    """Load configuration from a JSON file."""
    return Config.model_validate_json(path.read_text())
