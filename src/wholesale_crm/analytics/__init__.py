"""
Analytics Module

Dashboard KPIs, daily creation charts, the activity feed and the offer
revenue pipeline.
"""
from src.wholesale_crm.analytics.service import AnalyticsService, chart_window, daily_counts

__all__ = [
    "AnalyticsService",
    "chart_window",
    "daily_counts",
]
