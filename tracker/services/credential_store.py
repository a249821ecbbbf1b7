"""Encrypted storage of integration access tokens"""

from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..models.integration import Integration
from .errors import CredentialError, IntegrationNotConfigured


def _fernet(key: Optional[str] = None) -> Fernet:
    key = key or settings.INTEGRATION_ENCRYPTION_KEY
    if not key:
        raise CredentialError("INTEGRATION_ENCRYPTION_KEY is not configured")
    try:
        return Fernet(key.encode() if isinstance(key, str) else key)
    except (ValueError, TypeError) as e:
        raise CredentialError(f"INTEGRATION_ENCRYPTION_KEY is invalid: {e}") from e


def encrypt_token(token: str, key: Optional[str] = None) -> str:
    """Encrypt an access token for storage"""
    return _fernet(key).encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: str, key: Optional[str] = None) -> str:
    """Decrypt a stored access token"""
    try:
        return _fernet(key).decrypt(encrypted_token.encode()).decode()
    except InvalidToken as e:
        raise CredentialError("Stored access token could not be decrypted") from e


class CredentialStore:
    """Resolve a user's decrypted provider credential"""

    def __init__(self, db: AsyncSession, key: Optional[str] = None):
        self.db = db
        self.key = key

    async def get_integration(self, user_id: int, provider: str) -> Integration:
        """Enabled integration row, or IntegrationNotConfigured"""
        result = await self.db.execute(
            select(Integration).where(
                Integration.user_id == user_id, Integration.provider == provider
            )
        )
        integration = result.scalar_one_or_none()
        if not integration or not integration.enabled:
            raise IntegrationNotConfigured(
                f"{provider.capitalize()} integration not found or disabled"
            )
        return integration

    async def get_decrypted_access_token(self, user_id: int, provider: str) -> str:
        integration = await self.get_integration(user_id, provider)
        return decrypt_token(integration.access_token, self.key)
