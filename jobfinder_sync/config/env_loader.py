"""
Environment loading for the Firestore connection.
Reads .env files and resolves project, credentials and emulator settings.
"""

import os
from pathlib import Path
from typing import Dict, Optional
from dotenv import load_dotenv

# Setup hints shown when a variable is missing or wrong
ENV_HINTS = {
    "GCP_PROJECT_ID": "Set this to your Google Cloud Project ID (e.g., jobfinder-prod)",
    "GOOGLE_APPLICATION_CREDENTIALS": "Point this at a service account JSON key downloaded from the Cloud Console",
}


class EnvironmentConfigError(Exception):
    """Raised when Firestore environment variables are missing or invalid."""
    pass


def load_environment(env_file: Optional[str] = None) -> None:
    """
    Load variables from ``env_file``, else ``.env.local``, else ``.env``.

    A missing file is ignored; deployed environments set the variables directly.
    """
    candidates = [Path(env_file)] if env_file is not None else [Path(".env.local"), Path(".env")]
    for env_path in candidates:
        if env_path.exists():
            load_dotenv(env_path)
            return


def _hint(name: str) -> str:
    return f"\n  Hint: {ENV_HINTS[name]}" if name in ENV_HINTS else ""


def get_required_env_var(name: str, description: str = "") -> str:
    """
    Raises:
        EnvironmentConfigError: If the variable is unset or empty
    """
    value = os.getenv(name)
    if not value:
        label = f"{name} ({description})" if description else name
        raise EnvironmentConfigError(f"Required environment variable {label} is not set{_hint(name)}")
    return value


def get_optional_env_var(name: str, default: str = "") -> str:
    return os.getenv(name) or default


def is_emulator() -> bool:
    """True when a Firestore emulator host is configured."""
    return bool(os.getenv("FIRESTORE_EMULATOR_HOST"))


def get_firestore_settings() -> Dict[str, str]:
    """
    Resolve the settings needed to open a Firestore connection.

    The project id is required unless an emulator is configured, in which
    case it falls back to GCLOUD_PROJECT or "demo-project".

    Returns:
        Dictionary with project_id, credentials_path and emulator_host

    Raises:
        EnvironmentConfigError: If the project id is missing or the
            credentials path does not exist
    """
    emulator_host = get_optional_env_var("FIRESTORE_EMULATOR_HOST")

    if emulator_host:
        project_id = get_optional_env_var("GCP_PROJECT_ID") or get_optional_env_var("GCLOUD_PROJECT", "demo-project")
    else:
        project_id = get_required_env_var("GCP_PROJECT_ID", "Google Cloud Project ID for Firestore access")

    credentials_path = get_optional_env_var("GOOGLE_APPLICATION_CREDENTIALS")
    if credentials_path and not Path(credentials_path).exists():
        raise EnvironmentConfigError(
            f"GOOGLE_APPLICATION_CREDENTIALS path does not exist: {credentials_path}"
            f"{_hint('GOOGLE_APPLICATION_CREDENTIALS')}"
        )

    return {
        "project_id": project_id,
        "credentials_path": credentials_path,
        "emulator_host": emulator_host,
    }
