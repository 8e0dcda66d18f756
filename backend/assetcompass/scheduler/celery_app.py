from celery import Celery

from assetcompass.core.config import settings

app = Celery("assetcompass")
app.conf.broker_url = settings.CELERY_BROKER_URL
app.conf.result_backend = settings.CELERY_RESULT_BACKEND
app.conf.timezone = settings.CELERY_TIMEZONE
app.conf.enable_utc = False
app.conf.task_serializer = "json"
app.conf.task_ignore_result = True

app.conf.include = ["assetcompass.tasks.notifications"]
