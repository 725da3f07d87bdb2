"""
Add Celery Beat schedules for issue maintenance.

- Auto-close stale issues: daily at 03:00
- Recover stuck refunds: every 15 minutes
"""

from django.db import migrations

AUTO_CLOSE_TASK = "Issues: Auto-close Stale Issues"
RECOVER_TASK = "Issues: Recover Stuck Processing"


def create_periodic_tasks(apps, schema_editor):
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    daily_3am, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="3",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
    )
    schedule_15min, _ = IntervalSchedule.objects.get_or_create(
        every=15,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=AUTO_CLOSE_TASK,
        defaults={
            "task": "issues.tasks.auto_close_stale_issues",
            "crontab": daily_3am,
            "enabled": True,
            "description": "Closes INFO_REQUESTED issues with no customer reply.",
        },
    )
    PeriodicTask.objects.get_or_create(
        name=RECOVER_TASK,
        defaults={
            "task": "issues.tasks.recover_stuck_processing",
            "interval": schedule_15min,
            "enabled": True,
            "description": "Completes refunds left in PROCESSING by a crashed worker.",
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name__in=[AUTO_CLOSE_TASK, RECOVER_TASK]).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("issues", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
