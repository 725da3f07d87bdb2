import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("ISSUE_REPORTED", "Issue reported"),
                            ("ISSUE_RESOLVED", "Issue resolved"),
                            ("REPRINT_CREATED", "Reprint created"),
                            ("ORDER_REFUNDED", "Order refunded"),
                            ("CANCELLATION_APPROVED", "Cancellation approved"),
                            ("CANCELLATION_REJECTED", "Cancellation rejected"),
                            ("ORDER_CANCELLED", "Order cancelled"),
                        ],
                        db_index=True,
                        max_length=40,
                    ),
                ),
                ("entity_type", models.CharField(max_length=40)),
                ("entity_id", models.CharField(max_length=64)),
                ("actor_id", models.CharField(blank=True, default="", max_length=64)),
                ("actor_email", models.EmailField(blank=True, default="", max_length=254)),
                (
                    "actor_type",
                    models.CharField(
                        choices=[
                            ("ADMIN", "Admin"),
                            ("CUSTOMER", "Customer"),
                            ("SYSTEM", "System"),
                        ],
                        default="SYSTEM",
                        max_length=10,
                    ),
                ),
                ("details", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
            ],
            options={
                "verbose_name_plural": "Audit log entries",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["entity_type", "entity_id"],
                        name="audit_entity_idx",
                    )
                ],
            },
        ),
    ]
