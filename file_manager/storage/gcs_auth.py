"""Service-account credential resolution for the GCS engine."""

import base64
import binascii
import json
from typing import Any, Optional

from google.oauth2 import service_account

from file_manager.exceptions import ConfigurationError

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


def normalize_private_key(key: str) -> str:
    """Turn escaped "\\n" sequences (common in env vars) back into newlines."""
    return key.replace("\\n", "\n")


def parse_gcs_credentials(raw: str) -> dict[str, Any]:
    """Parse a key-file payload given as JSON text or base64-encoded JSON."""
    text = raw.strip()
    if not text.startswith("{"):
        try:
            text = base64.b64decode(text, validate=True).decode("utf-8").strip()
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ConfigurationError(
                "Failed to decode base64 GCS credentials JSON. Provide valid JSON or base64 encoded JSON."
            ) from e
    try:
        info = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError("Invalid GCS credentials JSON provided.") from e
    if not isinstance(info, dict):
        raise ConfigurationError("GCS credentials JSON must be an object.")
    if info.get("private_key"):
        info["private_key"] = normalize_private_key(info["private_key"])
    return info


def resolve_service_account_info(
    key_file_json: Optional[str] = None,
    client_email: Optional[str] = None,
    private_key: Optional[str] = None,
    credentials: Optional[dict[str, Any]] = None,
) -> Optional[dict[str, Any]]:
    """
    Pick the service-account info to use, later sources winning:
    an explicit credentials dict, then key-file JSON, then an inline
    client_email/private_key pair. Returns None when nothing is given.
    """
    info = dict(credentials) if credentials else None
    if key_file_json:
        info = parse_gcs_credentials(key_file_json)
    if client_email or private_key:
        if not client_email or not private_key:
            raise ConfigurationError(
                "GCS inline credentials require both client_email and private_key."
            )
        info = {
            "type": "service_account",
            "client_email": client_email,
            "private_key": normalize_private_key(private_key),
        }
    if info is not None:
        # google-auth refuses service-account info without a token endpoint
        info.setdefault("token_uri", GOOGLE_TOKEN_URI)
    return info


def load_gcs_credentials(
    key_filename: Optional[str] = None,
    key_file_json: Optional[str] = None,
    client_email: Optional[str] = None,
    private_key: Optional[str] = None,
    credentials: Optional[dict[str, Any]] = None,
) -> Optional[service_account.Credentials]:
    """Build service-account credentials, or None to fall back to Application Default Credentials."""
    info = resolve_service_account_info(key_file_json, client_email, private_key, credentials)
    try:
        if info is not None:
            return service_account.Credentials.from_service_account_info(info)
        if key_filename:
            return service_account.Credentials.from_service_account_file(key_filename)
    except (ValueError, OSError) as e:
        raise ConfigurationError(f"Unusable GCS service-account credentials: {e}") from e
    return None
