import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

app.conf.beat_schedule = {
    # Online payments whose callback never arrived
    "reverify-pending-payments": {
        "task": "apps.payments.tasks.reverify_pending_payments",
        "schedule": crontab(minute="*/10"),
    },
}
