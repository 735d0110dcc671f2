"""
FastAPI REST API for the Wholesale CRM

Provides REST endpoints for:
- Leads and their properties (intake, pipeline status, buyer matches)
- Buyers and purchase preferences
- Tasks (work queue, overdue / due today, rule-based generation)
- Offers
- Dashboard statistics and health checks
"""
