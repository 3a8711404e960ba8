"""
Pydantic schemas for inference request/response models.

Provides validation and serialization for the table-question-answering
wire format.
"""

from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TableQuestion(BaseModel):
    """Request body: the whole table plus one natural-language query."""

    table: Dict[str, List[str]] = Field(..., description="Column name to ordered cell values")
    query: str = Field(..., description="User query string")

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        """Reject blank queries; the text itself is sent unchanged."""
        if not v.strip():
            raise ValueError("Query must not be empty")
        return v


class TableAnswer(BaseModel):
    """Successful model response."""

    model_config = ConfigDict(frozen=True)

    answer: str
    coordinates: List[Tuple[int, int]] = Field(default_factory=list, description="(row, column) of each selected cell")
    cells: List[str] = Field(default_factory=list)
    aggregator: str = Field(default="", description="Aggregation applied to the cells, e.g. NONE, SUM, COUNT")
