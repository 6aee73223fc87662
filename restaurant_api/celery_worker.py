"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.

Run with:
    celery -A restaurant_api.celery_worker worker --loglevel=info
"""

from celery import Celery

from restaurant_api.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    'restaurant_worker',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['restaurant_api.tasks']
)

celery_app.conf.update(
    task_default_queue=settings.celery_queue,
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    result_expires=settings.celery_result_expires,
    timezone='UTC',
    enable_utc=True,

    # Exports share one workbook; one task per worker at a time
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.celery_concurrency,

    task_acks_late=True,
    task_reject_on_worker_lost=True,
    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
