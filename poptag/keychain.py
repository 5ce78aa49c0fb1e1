"""
Credential and session-token storage in the system keychain.
Works with macOS Keychain, Windows Credential Manager and Linux Secret Service.
"""

import os
import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

# Service name for keyring storage
SERVICE_NAME = "poptag"

USERNAME_KEY = "POPTAG_API_USERNAME"
PASSWORD_KEY = "POPTAG_API_PASSWORD"
TOKEN_KEY = "POPTAG_API_TOKEN"

CREDENTIAL_KEYS = [USERNAME_KEY, PASSWORD_KEY, TOKEN_KEY]


def is_keyring_available() -> bool:
    """Check if a usable keyring backend is configured."""
    try:
        backend = keyring.get_keyring()

        # The fail/null backends report a non-positive priority
        if hasattr(backend, 'priority') and backend.priority <= 0:
            logger.debug(f"Keyring backend '{backend}' has low priority, may not work")
            return False

        keyring.get_password(SERVICE_NAME, "availability-check")
        return True
    except (KeyringError, RuntimeError) as e:
        logger.debug(f"Keyring not working: {e}")
        return False


def get_credential_from_keychain(key: str) -> Optional[str]:
    """Get a credential from the system keychain, or None."""
    if not is_keyring_available():
        return None

    try:
        return keyring.get_password(SERVICE_NAME, key)
    except KeyringError as e:
        logger.debug(f"Failed to get credential from keychain: {e}")
        return None


def save_credential_to_keychain(key: str, value: str) -> bool:
    """Save a credential to the system keychain; False when it could not be stored."""
    if not is_keyring_available():
        return False

    try:
        keyring.set_password(SERVICE_NAME, key, value)
        return True
    except KeyringError as e:
        logger.debug(f"Failed to save credential to keychain: {e}")
        return False


def delete_credential_from_keychain(key: str) -> bool:
    if not is_keyring_available():
        return False

    try:
        keyring.delete_password(SERVICE_NAME, key)
        return True
    except KeyringError:
        # Missing keys raise PasswordDeleteError
        return False


def get_credential(key: str) -> Optional[str]:
    """Get a credential from the environment first, then the keychain."""
    value = os.environ.get(key)
    if value:
        return value
    return get_credential_from_keychain(key)


def cache_credential(key: str, value: str) -> None:
    """Set a credential for this process and, when possible, persist it."""
    os.environ[key] = value

    if save_credential_to_keychain(key, value):
        logger.debug(f"Saved {key} to system keychain")
    else:
        logger.debug(f"Could not save {key} to keychain, only available for this process")


def get_saved_token() -> Optional[str]:
    """Bearer token from a previous login, if one was kept."""
    return get_credential(TOKEN_KEY)


def save_token(token: str) -> None:
    cache_credential(TOKEN_KEY, token)


def clear_all_credentials() -> None:
    """Remove stored credentials and the session token."""
    for key in CREDENTIAL_KEYS:
        delete_credential_from_keychain(key)
        if key in os.environ:
            del os.environ[key]
    logger.info("Cleared stored credentials and session token")
