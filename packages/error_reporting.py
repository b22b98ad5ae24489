import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

import packages.config as config

_enabled = False


def init_error_reporting(service_name: str, enable_fastapi: bool = False) -> bool:
    """Start Sentry when ACTIVITYLOG_SENTRY_DSN is set; otherwise a no-op."""
    global _enabled
    if not config.SENTRY_DSN:
        return False

    # Errors logged through `logging` become events; INFO and up become breadcrumbs.
    integrations = [LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)]
    if enable_fastapi:
        integrations.extend([FastApiIntegration(), StarletteIntegration()])

    sentry_sdk.init(
        dsn=config.SENTRY_DSN,
        environment=config.RUN_MODE,
        release=config.RELEASE,
        traces_sample_rate=config.SENTRY_TRACES_SAMPLE_RATE,
        integrations=integrations,
        send_default_pii=False,
    )
    sentry_sdk.set_tag("service", service_name)
    _enabled = True
    return True


def report_exception(exc: BaseException, **tags: str) -> None:
    if not _enabled:
        return
    with sentry_sdk.new_scope() as scope:
        for key, value in tags.items():
            scope.set_tag(key, value)
        sentry_sdk.capture_exception(exc)
