from schemas.reports import ReportDraft, Report, ReportPatch, ReportFilter, Severity
from schemas.feed import FeedEvent
from schemas.dashboard import Dashboard, DashboardStats, Hotspot
