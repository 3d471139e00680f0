"""
Configuration for graphmodel.

All settings are read from environment variables prefixed with
``GRAPHMODEL_`` and can be overridden by keyword arguments.

Invariants:
    - max_gsik is required before any write; it may stay unset here and be
      supplied per Snapshot or looked up on existing nodes
    - max_gsik must never be lowered once a tenant has data
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """graphmodel configuration."""

    # Graph table
    table_name: str = Field(default="GraphTable", min_length=1)

    # Partitioning
    max_gsik: Optional[int] = Field(default=None, ge=0, description="Secondary index partitions per tenant")
    tenant: str = Field(default="")

    # Snapshot behavior
    log_changes: bool = Field(default=False, description="Write CreatedAt/UpdatedAt properties")
    page_limit: int = Field(default=10, ge=1, description="Default page size for edge lists")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["text", "json"] = Field(default="text")

    model_config = {"env_prefix": "GRAPHMODEL_"}
