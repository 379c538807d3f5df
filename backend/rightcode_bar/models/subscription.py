from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Subscription(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    total_quota: float
    remaining_quota: float
    user_id: Optional[int] = None
    item_id: Optional[int] = None
    tier_id: Optional[int] = None
    duration_hours: Optional[float] = None
    expired_at: Optional[str] = None
    # None means the API sent an explicit null; see ``last_reset_present``.
    last_reset_at: Optional[str] = None
    last_reset_present: bool = Field(default=False, exclude=True)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    reset_today: Optional[bool] = None

    @property
    def used_quota(self) -> float:
        used = self.total_quota - self.remaining_quota
        # Clamps float noise and over-credited quota to 0.
        if used <= 0:
            return 0.0
        return used


class SubscriptionListResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    subscriptions: tuple[Subscription, ...] = ()
