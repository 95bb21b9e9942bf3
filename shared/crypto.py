"""
Encryption of the app secret stored in the local configuration file.

Temporary object store credentials are never stored, so only the long-lived
app secret passes through here.
"""

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
import base64
import binascii
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

MACHINE_KEY_SALT = b'voicedrop-config-v1'


class CredentialManager:
    """Encrypts/decrypts stored secrets with a machine-derived key."""

    @staticmethod
    def generate_key_from_password(password: str, salt: bytes) -> bytes:
        """
        Derive a Fernet key from a password using PBKDF2.

        Args:
            password: Password or machine identity string
            salt: Salt bytes for key derivation

        Returns:
            URL-safe base64 encoded key
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=100000,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode()))

    @staticmethod
    def generate_machine_key() -> bytes:
        """
        Derive a key from the machine id and the current user.

        Config files written on one machine cannot be decrypted on another.
        """
        try:
            with open('/etc/machine-id', 'r') as f:
                machine_id = f.read().strip()
        except OSError:
            machine_id = os.getenv('HOSTNAME', 'default-machine')

        username = os.getenv('USER', 'default-user')
        return CredentialManager.generate_key_from_password(f"{machine_id}-{username}", MACHINE_KEY_SALT)

    @staticmethod
    def encrypt(data: str, key: Optional[bytes] = None) -> str:
        """Encrypt a string; returns a base64 token."""
        if key is None:
            key = CredentialManager.generate_machine_key()

        encrypted = Fernet(key).encrypt(data.encode())
        return base64.urlsafe_b64encode(encrypted).decode()

    @staticmethod
    def decrypt(encrypted_data: str, key: Optional[bytes] = None) -> Optional[str]:
        """
        Decrypt a token produced by :meth:`encrypt`.

        Returns:
            Decrypted string, or None if the token is invalid for this key
        """
        if key is None:
            key = CredentialManager.generate_machine_key()

        try:
            encrypted_bytes = base64.urlsafe_b64decode(encrypted_data.encode())
            return Fernet(key).decrypt(encrypted_bytes).decode()
        except (InvalidToken, binascii.Error, ValueError) as e:
            logger.warning("Decryption failed: %s", type(e).__name__)
            return None
