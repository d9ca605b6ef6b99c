from celery import Celery
from celery.schedules import crontab
from app.core.config import settings

# Background maintenance: audio retention and subscription expiry
celery_app = Celery(
    "voice_studio",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "app.tasks.artifact_tasks",
        "app.tasks.subscription_tasks",
    ],
)

celery_app.conf.update(
    task_track_started=True,
    timezone="UTC",
    beat_schedule={
        'sweep-expired-audio': {
            'task': 'tasks.sweep_expired_audio',
            'schedule': float(settings.AUDIO_SWEEP_INTERVAL_SECONDS),
        },
        'expire-overdue-subscriptions-daily': {
            'task': 'tasks.check_expired_subscriptions',
            'schedule': crontab(hour=0, minute=5),  # 00:05 UTC
        },
    },
)
