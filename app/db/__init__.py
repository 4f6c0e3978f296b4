"""
Database module for the contractor CRM.

This module provides database functionality including:
- Supabase client and CRM record operations
- Automation rule and run-log persistence
- Typed views over the automation tables
"""

from .client import DatabaseClient, get_database_client
from .models import Automation, AutomationRun

__all__ = [
    "DatabaseClient",
    "get_database_client",
    "Automation",
    "AutomationRun",
]
