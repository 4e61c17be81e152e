"""
Authentication module for Supabase integration.

This module provides:
- JWT token validation
- Account sign-up through Supabase Auth
- The request-level ``require_auth`` helper
"""

import base64
import binascii
import logging
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, status
from supabase import Client, create_client

from ..config import CONFIG


logger = logging.getLogger(__name__)

ACCOUNT_TYPES = ("contractor", "realtor")


class SignUpError(RuntimeError):
    """Raised when Supabase Auth rejects a sign-up; carries its message."""


class SupabaseAuthManager:
    """Manages authentication with Supabase Auth."""

    def __init__(self):
        """Initialize the AuthManager with Supabase clients."""
        self.supabase_url = CONFIG.supabase_url
        self.supabase_anon_key = CONFIG.supabase_anon_key
        self.supabase_service_role_key = CONFIG.supabase_service_role_key
        self.jwt_secret = CONFIG.supabase_jwt_secret
        if not all([self.supabase_url, self.supabase_anon_key]):
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY environment variables are required")

        client_key = self.supabase_service_role_key or self.supabase_anon_key
        if not self.supabase_service_role_key:
            logger.warning("SUPABASE_SERVICE_ROLE_KEY not set; falling back to anon key for auth verification")
        self.supabase: Client = create_client(self.supabase_url, client_key)
        # Sign-up stores a session on the client it runs on, so it gets its own.
        self._public_client: Optional[Client] = None
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
        logger.debug("Falling back to Supabase SDK token validation")
        result = self._load_user_via_supabase(token)
        if not result:
            logger.warning("Supabase SDK could not validate token")
        return result

    def get_user_from_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Extract user information from a valid JWT token.

        Args:
            token: The JWT token

        Returns:
            User information dict or None if invalid
        """
        payload = self.verify_jwt_token(token)
        if not payload:
            return None

        return {
            "id": payload.get("sub"),
            "email": payload.get("email"),
            "metadata": payload.get("user_metadata", {})
        }

    def authenticate_request_token(self, authorization_header: str) -> Optional[str]:
        """
        Extract and validate JWT token from Authorization header.

        Returns:
            User ID if valid, None if invalid
        """
        if not authorization_header or not authorization_header.startswith("Bearer "):
            return None

        token = authorization_header[7:].strip()
        user_info = self.get_user_from_token(token)
        return user_info.get("id") if user_info else None

    def sign_up(
        self,
        *,
        email: str,
        password: str,
        full_name: str,
        account_type: str,
        redirect_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Register an account; the profile row is provisioned by Supabase itself.

        Returns ``user_id`` plus ``access_token``/``refresh_token`` when Supabase
        issued a session right away (email confirmation disabled).
        """
        if account_type not in ACCOUNT_TYPES:
            raise SignUpError(f"Unknown account type: {account_type}")

        options: Dict[str, Any] = {"data": {"full_name": full_name, "account_type": account_type}}
        if redirect_to:
            options["email_redirect_to"] = redirect_to

        if self._public_client is None:
            self._public_client = create_client(self.supabase_url, self.supabase_anon_key)
        try:
            response = self._public_client.auth.sign_up(
                {"email": email, "password": password, "options": options}
            )
        except Exception as exc:
            logger.warning("Supabase sign-up failed for %s: %s", email, exc)
            raise SignUpError(str(exc) or "Sign-up failed") from exc

        user = getattr(response, "user", None)
        session = getattr(response, "session", None)
        result: Dict[str, Any] = {"user_id": getattr(user, "id", None)}
        if session is not None:
            result["access_token"] = session.access_token
            result["refresh_token"] = session.refresh_token
        return result


AuthManager = SupabaseAuthManager


# Global auth manager instance
_auth_manager: Optional[AuthManager] = None


def get_auth_manager() -> AuthManager:
    """Get the global AuthManager instance."""
    global _auth_manager
    if _auth_manager is None:
        _auth_manager = AuthManager()
    return _auth_manager


def require_auth(authorization: str = None) -> str:
    """
    Resolve the user id for an Authorization header.

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
    user_id = auth_manager.authenticate_request_token(authorization)

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return user_id
