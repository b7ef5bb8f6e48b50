from datetime import datetime
from typing import Literal

from pydantic import BaseModel

SeverityBucket = Literal["high", "medium", "low"]
Trend = Literal["increasing", "stable", "decreasing"]


class DashboardStats(BaseModel):
    total_reports: int
    critical_alerts: int
    locations_monitored: int


class Hotspot(BaseModel):
    location: str
    alerts: int
    trend: Trend
    severity: SeverityBucket


class Dashboard(BaseModel):
    window: str
    since: datetime
    stats: DashboardStats
    hotspots: list[Hotspot]
