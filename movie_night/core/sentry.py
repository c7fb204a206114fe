import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration


def init_sentry(dsn: str, environment: str = "dev",
                release: str | None = None) -> None:
    if not dsn:
        return
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        integrations=[
            # ошибки из логов шлём событиями, breadcrumbs не копим
            LoggingIntegration(level=None, event_level="ERROR"),
            FastApiIntegration(),
        ],
        traces_sample_rate=0.2,
        send_default_pii=False,
    )


def capture_collaborator_error(error: Exception, collaborator: str) -> None:
    """Report a non-fatal collaborator failure without raising."""
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("collaborator", collaborator)
        sentry_sdk.capture_exception(error)
