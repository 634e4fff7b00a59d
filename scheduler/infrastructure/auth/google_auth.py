# scheduler/infrastructure/auth/google_auth.py
"""
Google Authentication module for the Appointment Scheduler.
Works with both local development files and Streamlit Cloud secrets.
"""

import os
import json
import streamlit as st
from typing import Optional, Dict, Any, List
from google.oauth2.service_account import Credentials
import gspread

from scheduler.utils.logging_config import get_logger
from scheduler.utils.config import (
    GOOGLE_CREDENTIALS_PATH,
    GOOGLE_SCOPES,
    GOOGLE_SECRETS_KEY,
)

# Initialize logger
logger = get_logger(__name__)

REQUIRED_ACCOUNT_FIELDS = ["type", "project_id", "private_key", "client_email"]
CREDENTIALS_ENV_VAR = "GOOGLE_APPLICATION_CREDENTIALS_JSON"


class AuthenticationError(Exception):
    """Custom exception for authentication failures"""

    pass


def _load_secrets_section() -> Optional[Dict[str, Any]]:
    """
    Read the service account section from Streamlit secrets.

    Returns:
        Service account info, or None when no secrets are configured
    """
    try:
        if hasattr(st, "secrets") and GOOGLE_SECRETS_KEY in st.secrets:
            return dict(st.secrets[GOOGLE_SECRETS_KEY])
    except Exception as e:
        # st.secrets raises when no secrets.toml exists at all
        logger.debug(f"Streamlit secrets unavailable: {str(e)}")
    return None


def check_service_account_info(info: Dict[str, Any], source: str) -> None:
    """
    Validate the shape of service account info.

    Raises:
        AuthenticationError: If required fields are missing or the type is wrong
    """
    missing_fields = [field for field in REQUIRED_ACCOUNT_FIELDS if field not in info]
    if missing_fields:
        raise AuthenticationError(
            f"Missing required fields in {source}: {missing_fields}"
        )

    if info.get("type") != "service_account":
        raise AuthenticationError(
            f"Invalid credential type in {source}: {info.get('type')}"
        )


def get_google_credentials() -> Credentials:
    """
    Get Google credentials from Streamlit secrets, a local file or the environment.

    Returns:
        Authenticated Credentials object

    Raises:
        AuthenticationError: If credentials cannot be loaded
    """
    logger.info("Loading Google credentials...")

    # Method 1: Streamlit secrets (cloud deployment)
    try:
        service_account_info = _load_secrets_section()
        if service_account_info is not None:
            logger.info("Attempting to load credentials from Streamlit secrets...")
            check_service_account_info(service_account_info, "Streamlit secrets")
            credentials = Credentials.from_service_account_info(
                service_account_info, scopes=GOOGLE_SCOPES
            )
            logger.info(
                f"Loaded credentials from Streamlit secrets for "
                f"{service_account_info.get('client_email')}"
            )
            return credentials

    except Exception as e:
        logger.warning(f"Could not load from Streamlit secrets: {str(e)}")

    # Method 2: Local file (development)
    try:
        if os.path.exists(GOOGLE_CREDENTIALS_PATH):
            logger.info(
                f"Attempting to load credentials from local file: {GOOGLE_CREDENTIALS_PATH}"
            )
            credentials = Credentials.from_service_account_file(
                GOOGLE_CREDENTIALS_PATH, scopes=GOOGLE_SCOPES
            )
            logger.info("Successfully loaded credentials from local file")
            return credentials
        else:
            logger.warning(
                f"Local credentials file not found: {GOOGLE_CREDENTIALS_PATH}"
            )

    except Exception as e:
        logger.warning(f"Could not load from local file: {str(e)}")

    # Method 3: Environment variable holding the JSON document
    try:
        google_creds_env = os.getenv(CREDENTIALS_ENV_VAR)
        if google_creds_env:
            logger.info("Attempting to load credentials from environment variable...")
            service_account_info = json.loads(google_creds_env)
            check_service_account_info(service_account_info, CREDENTIALS_ENV_VAR)
            credentials = Credentials.from_service_account_info(
                service_account_info, scopes=GOOGLE_SCOPES
            )
            logger.info("Successfully loaded credentials from environment variable")
            return credentials

    except Exception as e:
        logger.warning(f"Could not load from environment variable: {str(e)}")

    error_msg = (
        "Could not load Google credentials from any source. "
        "Please check:\n"
        f"1. Streamlit secrets contain a [{GOOGLE_SECRETS_KEY}] section\n"
        f"2. A credentials file exists at {GOOGLE_CREDENTIALS_PATH}\n"
        f"3. {CREDENTIALS_ENV_VAR} is set"
    )
    logger.error(error_msg)
    raise AuthenticationError(error_msg)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def create_authenticated_client() -> gspread.Client:
    """
    Create an authenticated Google Sheets client.

    Returns:
        Authenticated gspread client

    Raises:
        AuthenticationError: If authentication fails
    """
    logger.info("Creating authenticated Google Sheets client...")

    credentials = get_google_credentials()
    try:
        client = gspread.authorize(credentials)
    except Exception as e:
        error_msg = f"Failed to create gspread client: {str(e)}"
        logger.error(error_msg)
        raise AuthenticationError(error_msg)

    logger.info("gspread client created successfully")
    return client


def list_credential_sources() -> List[str]:
    """
    Names of the credential sources that are currently configured.

    Returns:
        Subset of ["streamlit_secrets", "local_file", "environment"]
    """
    sources = []
    if _load_secrets_section() is not None:
        sources.append("streamlit_secrets")
    if os.path.exists(GOOGLE_CREDENTIALS_PATH):
        sources.append("local_file")
    if os.getenv(CREDENTIALS_ENV_VAR):
        sources.append("environment")
    return sources


def get_service_account_info() -> Optional[Dict[str, str]]:
    """
    Get non-secret service account details without authenticating.

    Returns:
        Dictionary with project_id and client_email, or None if unavailable
    """
    info = _load_secrets_section()

    if info is None and os.path.exists(GOOGLE_CREDENTIALS_PATH):
        try:
            with open(GOOGLE_CREDENTIALS_PATH, "r") as f:
                info = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading service account info: {str(e)}")
            return None

    if info is None:
        return None

    return {
        "project_id": info.get("project_id", ""),
        "client_email": info.get("client_email", ""),
    }
