from __future__ import annotations

from enum import Enum
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


class Granularity(str, Enum):
    DAY = 'day'
    HOUR = 'hour'


class ModelUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    requests: int = Field(ge=0)
    total_tokens: int = Field(ge=0)
    total_cost: float = Field(ge=0)


class TrendPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str
    requests: int = Field(ge=0)
    total_tokens: int = Field(ge=0)
    total_cost: float = Field(ge=0)


class UsageStats(BaseModel):
    """Aggregated usage returned by the stats endpoint for one date window."""

    model_config = ConfigDict(frozen=True)

    total_requests: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    total_cost: float = Field(default=0.0, ge=0)
    tokens_by_model: Dict[str, int] = Field(default_factory=dict)
    details_by_model: tuple[ModelUsage, ...] = ()
    trend: tuple[TrendPoint, ...] = ()


class UsageDistributionItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    requests: int
    total_tokens: int
    total_cost: float
    ratio: float = Field(description='Share of total tokens, 0-100')
    color: str


class UsageDateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_date: str
    end_date: str
    granularity: Granularity
