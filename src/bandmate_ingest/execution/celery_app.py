"""Celery application factory.

The API process and the worker process build their Celery app from the same
settings so both agree on the broker, the queue name and serialisation.
"""

from celery import Celery

from bandmate_ingest.core.settings import IngestSettings


def create_celery_app(settings: IngestSettings) -> Celery:
    """Build a Celery app bound to ``settings.broker_url``.

    Construction does not open a connection; use
    :meth:`BrokerMonitor.probe` to check the broker is reachable.
    """
    app = Celery(
        "bandmate_ingest",
        broker=settings.broker_url,
        backend=settings.result_backend_url,
    )
    app.conf.update(
        # Task settings
        task_default_queue=settings.queue_name,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        # Serialization
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        # Time settings
        timezone="UTC",
        enable_utc=True,
        # Connection
        broker_connection_timeout=settings.broker_connect_timeout,
        broker_connection_retry_on_startup=True,
        broker_transport_options={"socket_connect_timeout": settings.broker_connect_timeout},
        # Task tracking
        task_track_started=True,
        result_expires=86400,
    )
    return app
