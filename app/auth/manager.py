"""
Authentication module for Supabase integration.

This module provides:
- JWT token validation
- User lookup from bearer tokens
- The FastAPI ``require_auth`` helper
"""

import base64
import binascii
import logging
import os
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, status
from supabase import Client, create_client


logger = logging.getLogger(__name__)

class SupabaseAuthManager:
    """Manages authentication with Supabase Auth."""

    def __init__(self):
        """Initialize the AuthManager with Supabase client."""
        self.supabase_url = os.getenv("SUPABASE_URL")
        self.supabase_anon_key = os.getenv("SUPABASE_ANON_KEY")
        self.supabase_service_role_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        self.jwt_secret = os.getenv("SUPABASE_JWT_SECRET")
        if not all([self.supabase_url, self.supabase_anon_key]):
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY environment variables are required")

        client_key = self.supabase_service_role_key or self.supabase_anon_key
        if not self.supabase_service_role_key:
            logger.warning("SUPABASE_SERVICE_ROLE_KEY not set; falling back to anon key for auth verification")
        self.supabase: Client = create_client(self.supabase_url, client_key)
        self._jwt_secret_candidates = self._prepare_jwt_secret_candidates(self.jwt_secret)

    @staticmethod
    def _prepare_jwt_secret_candidates(secret: Optional[str]) -> list:
        candidates: list = []
        if not secret:
            return candidates

        raw = secret.strip()
        if raw:
            candidates.append(raw)
            try:
                decoded = base64.b64decode(raw, validate=True)
                if decoded:
                    candidates.append(decoded)
            except (binascii.Error, ValueError):
                pass
        return candidates

    def _load_user_via_supabase(self, token: str) -> Optional[Dict[str, Any]]:
        """Fallback to Supabase SDK for token validation."""
        try:
            user = self.supabase.auth.get_user(token)
        except Exception as exc:
            logger.warning("Supabase auth get_user raised an exception: %s", exc)
            return None
        if not user or not getattr(user, "user", None):
            return None
        supa_user = user.user
        return {
            "sub": supa_user.id,
            "email": supa_user.email,
            "user_metadata": supa_user.user_metadata or {},
        }

    def verify_jwt_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Verify and decode a JWT token from Supabase Auth.

        Args:
            token: The JWT token to verify

        Returns:
            Decoded token payload if valid, None if invalid
        """
        if not token:
            logger.debug("verify_jwt_token received empty token")
            return None
        try:
            for candidate in self._jwt_secret_candidates:
                try:
                    return jwt.decode(
                        token,
                        candidate,
                        algorithms=["HS256"],
                        audience="authenticated",
                    )
                except jwt.InvalidTokenError:
                    logger.debug("JWT decode failed for one candidate; trying next")
                    continue
            result = self._load_user_via_supabase(token)
            if not result:
                logger.warning("Supabase SDK could not validate token")
            return result
        except Exception:
            logger.exception("Unexpected error while decoding JWT; falling back to Supabase SDK")
            return self._load_user_via_supabase(token)

    def get_user_from_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Extract ``id``, ``email`` and ``metadata`` from a valid JWT token."""
        payload = self.verify_jwt_token(token)
        if not payload:
            return None

        return {
            "id": payload.get("sub"),
            "email": payload.get("email"),
            "metadata": payload.get("user_metadata", {})
        }

    def authenticate_request_token(self, authorization_header: str) -> Optional[Dict[str, Any]]:
        """Validate a ``Bearer`` Authorization header and return the user info."""
        if not authorization_header or not authorization_header.startswith("Bearer "):
            return None

        token = authorization_header[7:].strip()
        user_info = self.get_user_from_token(token)
        if not user_info or not user_info.get("id"):
            return None
        return user_info


AuthManager = SupabaseAuthManager


# Global auth manager instance
_auth_manager: Optional[AuthManager] = None


def get_auth_manager() -> AuthManager:
    """Get the global AuthManager instance."""
    global _auth_manager
    if _auth_manager is None:
        _auth_manager = AuthManager()
    return _auth_manager


def require_auth(authorization: str = None) -> Dict[str, Any]:
    """
    Resolve the authenticated user from an Authorization header.

    Raises:
        HTTPException: If authentication fails
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    auth_manager = get_auth_manager()
    user_info = auth_manager.authenticate_request_token(authorization)

    if not user_info:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return user_info
