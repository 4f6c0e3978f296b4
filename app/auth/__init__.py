"""
Authentication and trusted-actor access

This module provides:
- User authentication via Supabase Auth
- JWT token validation for API requests
- The system actor the automation engine uses for user-scoped access
"""

from .manager import AuthManager, get_auth_manager, require_auth
from .system_actor import SystemActor

__all__ = [
    'AuthManager',
    'get_auth_manager',
    'require_auth',
    'SystemActor',
]
