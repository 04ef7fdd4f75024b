from celery import Celery
from mktdept.core.config import get_settings

settings = get_settings()

celery_app = Celery("mktdept", broker=settings.redis_url, backend=settings.redis_url, include=["mktdept.tasks.pipeline"])
celery_app.conf.update(task_track_started=True, result_expires=3600, broker_connection_retry_on_startup=True,)
