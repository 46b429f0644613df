"""Table schema data models."""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional


_MODEL_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class ColumnInfo(BaseModel):
    """Column information model."""

    model_config = _MODEL_CONFIG

    name: str
    data_type: str = Field(..., alias="type")
    is_nullable: bool = True
    description: Optional[str] = None


class TableSchema(BaseModel):
    """Columns and storage statistics of one table."""

    model_config = _MODEL_CONFIG

    table: str
    columns: list[ColumnInfo] = Field(..., alias="schema")
    num_rows: Optional[int] = None
    num_bytes: Optional[int] = None
    last_modified: Optional[datetime] = None
