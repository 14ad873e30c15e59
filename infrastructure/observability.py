"""
Centralized Observability Infrastructure.
Structured logging setup and Sentry SDK initialization, both governed by
environment variables.
"""

import logging
import os
import re
from typing import Any, Dict

log = logging.getLogger(__name__)

SENSITIVE_KEYS = ("password", "token", "secret", "salt", "hash", "api_key", "authorization")

SENSITIVE_PATTERNS = [
    re.compile(r"[A-Za-z0-9_\-]{32,}(\.[a-f0-9]{64})?"),  # session tokens, reset tokens, DSNs
    re.compile(r"[^@\s'\"]+@[^@\s'\"]+\.[A-Za-z]{2,}"),  # e-mail addresses
]


def _mask_string(val: str) -> str:
    for pattern in SENSITIVE_PATTERNS:
        val = pattern.sub("[REDACTED]", val)
    return val


def _recursive_scrub(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if any(s in str(k).lower() for s in SENSITIVE_KEYS) else _recursive_scrub(v)
            for k, v in obj.items()
        }
    if isinstance(obj, list):
        return [_recursive_scrub(i) for i in obj]
    if isinstance(obj, str):
        return _mask_string(obj)
    return obj


def _scrub_sensitive_data(event: Dict[str, Any], hint: Dict[str, Any]) -> Dict[str, Any]:
    """
    Sentry before_send hook. Scrubs credentials, tokens and e-mail addresses
    from stack frame locals and breadcrumbs before the event leaves the server.
    """
    try:
        for exc in event.get("exception", {}).get("values", []):
            for frame in exc.get("stacktrace", {}).get("frames", []):
                if "vars" in frame:
                    frame["vars"] = _recursive_scrub(frame["vars"])
        breadcrumbs = event.get("breadcrumbs", {})
        if isinstance(breadcrumbs, dict) and "values" in breadcrumbs:
            breadcrumbs["values"] = _recursive_scrub(breadcrumbs["values"])
    except (AttributeError, TypeError) as e:
        log.warning(f"Sentry scrubber could not process event: {e}")
    return event


def setup_observability() -> None:
    """
    Initializes process logging and Sentry (if SENTRY_DSN is present).
    Safe to call on every Streamlit rerun; only the first call configures.
    """
    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    # 2026-02-27 15:00:00 | INFO    | module.name | The message
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    sentry_dsn = os.getenv("SENTRY_DSN")
    if sentry_dsn:
        import sentry_sdk
        sentry_env = os.getenv("SENTRY_ENV", "development")

        if not sentry_sdk.get_client().is_active():
            sentry_sdk.init(
                dsn=sentry_dsn,
                environment=sentry_env,
                traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.2")),
                send_default_pii=False,
                before_send=_scrub_sensitive_data
            )
            sentry_sdk.set_tag("app", "pci")
            log.info(f"Sentry SDK initialized (env: {sentry_env})")
    else:
        log.debug("SENTRY_DSN not provided. Running without Sentry.")

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
