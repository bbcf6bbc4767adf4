"""Sentry error tracking for the storefront API."""
from __future__ import annotations

import logging
import os
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger(__name__)

# customer contact details never leave the process
SCRUBBED_KEYS = frozenset({"email", "phone", "ecocashNumber", "innbucksNumber", "customerInfo"})


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: "[scrubbed]" if key in SCRUBBED_KEYS else _scrub(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    return value


def scrub_event(event: dict[str, Any], hint: dict[str, Any] | None = None) -> dict[str, Any]:
    """before_send hook removing shopper contact data from request bodies and extras."""
    request = event.get("request")
    if isinstance(request, dict) and "data" in request:
        request["data"] = _scrub(request["data"])
    if "extra" in event:
        event["extra"] = _scrub(event["extra"])
    return event


def init_sentry(
    dsn: str | None = None,
    environment: str = "production",
    enable_logging: bool = True,
    sample_rate: float = 1.0,
    traces_sample_rate: float = 0.1,
) -> bool:
    """Start Sentry when a DSN is available.

    Args:
        dsn: Sentry DSN; SENTRY_DSN is used when omitted
        environment: Deployment name reported with every event
        enable_logging: Turn ERROR log records into events
        sample_rate: Share of errors sent
        traces_sample_rate: Share of requests traced

    Returns:
        Whether error tracking is active
    """
    sentry_dsn = dsn or os.getenv("SENTRY_DSN")
    if not sentry_dsn:
        logger.info("Sentry disabled: no DSN configured")
        return False

    integrations = (
        [LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)]
        if enable_logging
        else []
    )
    try:
        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=environment,
            release=os.getenv("GIT_COMMIT_SHA", "unknown"),
            integrations=integrations,
            sample_rate=sample_rate,
            traces_sample_rate=traces_sample_rate,
            send_default_pii=False,
            before_send=scrub_event,
        )
    except Exception as e:
        logger.error("Sentry init failed: %s", e)
        return False

    logger.info("Sentry enabled (environment=%s)", environment)
    return True


def capture_exception(error: Exception, **extra: Any) -> None:
    """Report an exception with extra key/value data attached."""
    with sentry_sdk.new_scope() as scope:
        for key, value in extra.items():
            scope.set_extra(key, value)
        sentry_sdk.capture_exception(error)
