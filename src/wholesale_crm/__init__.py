"""
Wholesale CRM

Lead intake, buyer matching, task lifecycle and offer tracking for
real estate wholesaling teams.
"""
