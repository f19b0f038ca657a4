# Celery app: the chunk chain of the background stock sync

from celery import Celery
from kombu import Exchange, Queue
from app.core.config import settings
from app.core.logging import configure_logging

configure_logging()


'''
Celery instance
   - one orchestrator worker is enough: every chunk already fans out to
     SYNC_CONCURRENCY threads internally
'''
celery_app = Celery(
    "fina_stock_sync",
    broker=settings.CELERY_BROKER_URL,          # queue location (Redis)
    backend=settings.CELERY_RESULT_BACKEND,     # result store (Redis)
    include=[
        "app.orchestration.stock_sync.sync_task",     # chunk chain
    ],
)


'''
  Common Celery config
'''
celery_app.conf.update(
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_track_started=True,
    broker_connection_retry_on_startup=True,
    # === fault tolerance ===
    worker_prefetch_multiplier=1,    # one chunk at a time per worker process
    task_acks_late=False,            # a redelivered chunk would replay writes already sent
    broker_heartbeat=30,
    broker_pool_limit=10,
)


celery_app.conf.task_queues = (
    Queue("default", Exchange("default"), routing_key="default"),
    Queue("orchestrator", Exchange("orchestrator"), routing_key="orchestrator"),   # stock sync chain
)


celery_app.conf.task_routes = {
    "app.orchestration.stock_sync.sync_chunk_task": {"queue": "orchestrator"},
}
