# Models package — import all models here so Alembic can discover them.

from playground.models.webhook_event import WebhookEvent, ReplayAttempt  # noqa: F401
