"""Firebase credential utilities and Firestore initialization."""
import os
import json
import logging
from typing import Dict, Any

import firebase_admin
from firebase_admin import credentials

logger = logging.getLogger(__name__)


def get_firebase_credentials() -> Dict[str, Any]:
    """
    Load Firebase service account credentials.

    Supported sources, in order:
    1. FIREBASE_CREDENTIALS_JSON - JSON string or path to JSON file
    2. FIREBASE_CREDENTIALS_PATH - path to service account JSON file
    3. GOOGLE_APPLICATION_CREDENTIALS - path to service account JSON file
    4. Individual environment variables (FIREBASE_PROJECT_ID, etc.)

    Raises:
        ValueError: If no valid credentials are found
    """
    creds_json = os.getenv('FIREBASE_CREDENTIALS_JSON')
    if creds_json:
        try:
            return json.loads(creds_json)
        except json.JSONDecodeError:
            if os.path.exists(creds_json):
                with open(creds_json, 'r') as f:
                    return json.load(f)

    for env_name in ('FIREBASE_CREDENTIALS_PATH', 'GOOGLE_APPLICATION_CREDENTIALS'):
        creds_path = os.getenv(env_name)
        if creds_path and os.path.exists(creds_path):
            with open(creds_path, 'r') as f:
                return json.load(f)

    if os.getenv('FIREBASE_PROJECT_ID') and os.getenv('FIREBASE_PRIVATE_KEY'):
        return {
            "type": "service_account",
            "project_id": os.getenv('FIREBASE_PROJECT_ID'),
            "private_key_id": os.getenv('FIREBASE_PRIVATE_KEY_ID'),
            "private_key": os.getenv('FIREBASE_PRIVATE_KEY', '').replace('\\n', '\n'),
            "client_email": os.getenv('FIREBASE_CLIENT_EMAIL'),
            "client_id": os.getenv('FIREBASE_CLIENT_ID'),
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
            "client_x509_cert_url": os.getenv('FIREBASE_CLIENT_CERT_URL'),
            "universe_domain": "googleapis.com"
        }

    raise ValueError(
        "Firebase credentials not found. Please set one of:\n"
        "1. FIREBASE_CREDENTIALS_JSON (JSON string or path to JSON file)\n"
        "2. FIREBASE_CREDENTIALS_PATH (path to service account JSON file)\n"
        "3. GOOGLE_APPLICATION_CREDENTIALS (path to service account JSON file)\n"
        "4. Individual env vars (FIREBASE_PROJECT_ID, FIREBASE_PRIVATE_KEY, etc.)"
    )


def init_firebase() -> bool:
    """Initialize the default Firebase app.

    Uses the Firestore emulator when FIRESTORE_EMULATOR_HOST is set,
    otherwise service account credentials. Returns False instead of raising
    so the API can still start (and report itself unconfigured) without a
    database.
    """
    if firebase_admin._apps:
        return True

    if os.getenv("FIRESTORE_EMULATOR_HOST"):
        project_id = os.getenv("GCLOUD_PROJECT") or os.getenv("FIREBASE_PROJECT_ID") or "demo-orgtasks"
        try:
            firebase_admin.initialize_app(options={'projectId': project_id})
            logger.info("Firebase initialized for emulator %s (project %s)",
                        os.getenv("FIRESTORE_EMULATOR_HOST"), project_id)
            return True
        except Exception:
            logger.exception("Emulator initialization failed")
            return False

    try:
        cred = credentials.Certificate(get_firebase_credentials())
        firebase_admin.initialize_app(cred)
        logger.info("Firebase initialized successfully")
        return True
    except ValueError as e:
        logger.warning("%s", e)
        logger.warning("Set FIRESTORE_EMULATOR_HOST=localhost:8080 to use the emulator instead")
        return False
    except Exception:
        logger.exception("Firebase initialization failed")
        return False
