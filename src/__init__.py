"""
Wholesale CRM - Core Package

This package contains the backend for the real estate wholesaling CRM,
including lead intake, buyer matching, task management and offers.
"""

__version__ = "0.4.0"
