from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class DealFiltersModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "all"
    property_type: str = Field(default="all", alias="propertyType")
    location: str = "all"


class FilterOptionsResponse(BaseModel):
    status: List[str]
    property_type: List[str]
    location: List[str]


class DataSummaryResponse(BaseModel):
    source: str
    row_counts: Dict[str, int]
    filtered_deals: int
    schemas: Dict[str, List[str]]
