"""
Authentication

This module provides:
- User authentication via Supabase Auth
- JWT token validation
- Account sign-up
"""

from .manager import ACCOUNT_TYPES, AuthManager, SignUpError, get_auth_manager, require_auth

__all__ = [
    'ACCOUNT_TYPES',
    'AuthManager',
    'SignUpError',
    'get_auth_manager',
    'require_auth',
]
