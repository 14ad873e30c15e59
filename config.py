"""Runtime configuration: secrets lookup and application constants."""

import os

import streamlit as st

APPROVAL_POLL_SECONDS = 60
SESSION_TTL_DAYS = 30
PASSWORD_RESET_TTL_MINUTES = 60
PASSWORD_ITERATIONS = 200_000
MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_SECONDS = 300
MIN_PASSWORD_LENGTH = 8

AVATAR_BUCKET = "avatars"
LOCAL_AVATAR_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static", AVATAR_BUCKET)


def get_secret(key, default=None):
    """Read a value from st.secrets, falling back to the environment."""
    try:
        value = st.secrets.get(key)
    except FileNotFoundError:
        value = None
    if value is None:
        value = os.getenv(key)
    return value if value is not None else default


def get_db_path() -> str:
    return get_secret("PCI_DB_PATH", "pci.db")
