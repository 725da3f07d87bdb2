import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


ISSUE_STATUS_CHOICES = [
    ("SUBMITTED", "Submitted"),
    ("AWAITING_REVIEW", "Awaiting Review"),
    ("INFO_REQUESTED", "Info Requested"),
    ("APPROVED_REPRINT", "Approved for Reprint"),
    ("APPROVED_REFUND", "Approved for Refund"),
    ("PROCESSING", "Processing"),
    ("COMPLETED", "Completed"),
    ("REJECTED", "Rejected"),
    ("CLOSED", "Closed"),
]

ISSUE_REASON_CHOICES = [
    ("DAMAGED_IN_TRANSIT", "Damaged in Transit"),
    ("QUALITY_ISSUE", "Quality Issue"),
    ("WRONG_ITEM", "Wrong Item"),
    ("PRINTING_ERROR", "Printing Error"),
    ("NEVER_ARRIVED", "Never Arrived"),
    ("OTHER", "Other"),
]

CARRIER_FAULT_CHOICES = [
    ("UNKNOWN", "Unknown"),
    ("CARRIER_FAULT", "Carrier Fault"),
    ("NOT_CARRIER_FAULT", "Not Carrier Fault"),
]

CLAIM_STATUS_CHOICES = [
    ("NOT_FILED", "Not Filed"),
    ("SUBMITTED", "Submitted"),
    ("UNDER_REVIEW", "Under Review"),
    ("APPROVED", "Approved"),
    ("REJECTED", "Rejected"),
    ("PAID", "Paid"),
]

RESOLUTION_TYPE_CHOICES = [
    ("REPRINT", "Reprint"),
    ("FULL_REFUND", "Full Refund"),
    ("PARTIAL_REFUND", "Partial Refund"),
]

RESOLUTION_KIND_CHOICES = [
    ("REPRINT", "Reprint"),
    ("REFUND", "Refund"),
]

RESOLUTION_STATUS_CHOICES = [
    ("PENDING", "Pending"),
    ("PROCESSING", "Processing"),
    ("COMPLETED", "Completed"),
    ("FAILED", "Failed"),
]

MESSAGE_SENDER_CHOICES = [
    ("CUSTOMER", "Customer"),
    ("ADMIN", "Admin"),
]


def _id():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            help_text="Unique identifier for this record",
            primary_key=True,
            serialize=False,
        ),
    )


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Issue",
            fields=[
                _id(),
                *_timestamps(),
                ("reason", models.CharField(choices=ISSUE_REASON_CHOICES, max_length=30)),
                ("notes", models.TextField(blank=True, default="")),
                ("image_urls", models.JSONField(blank=True, default=list)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=ISSUE_STATUS_CHOICES,
                        db_index=True,
                        default="SUBMITTED",
                        help_text="Current state of the issue (managed by FSM)",
                        max_length=30,
                        protected=True,
                    ),
                ),
                (
                    "carrier_fault",
                    models.CharField(
                        choices=CARRIER_FAULT_CHOICES,
                        db_index=True,
                        default="UNKNOWN",
                        max_length=20,
                    ),
                ),
                ("claim_reference", models.CharField(blank=True, default="", max_length=100)),
                (
                    "claim_status",
                    models.CharField(
                        choices=CLAIM_STATUS_CHOICES,
                        default="NOT_FILED",
                        max_length=20,
                    ),
                ),
                ("claim_submitted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "claim_payout_amount",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True),
                ),
                ("claim_paid_at", models.DateTimeField(blank=True, null=True)),
                ("claim_notes", models.TextField(blank=True, default="")),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("rejection_final", models.BooleanField(default=False)),
                (
                    "resolved_type",
                    models.CharField(
                        blank=True,
                        choices=RESOLUTION_TYPE_CHOICES,
                        default="",
                        max_length=20,
                    ),
                ),
                (
                    "refund_amount",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True),
                ),
                ("stripe_refund_id", models.CharField(blank=True, default="", max_length=255)),
                (
                    "processing_started_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the current processing attempt started",
                        null=True,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("is_concluded", models.BooleanField(db_index=True, default=False)),
                ("concluded_at", models.DateTimeField(blank=True, null=True)),
                ("conclusion_reason", models.TextField(blank=True, default="")),
                (
                    "order_item",
                    models.OneToOneField(
                        help_text="Item this issue is about",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="issue",
                        to="orders.orderitem",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        help_text="Customer who reported the issue",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="issues",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "original_issue",
                    models.ForeignKey(
                        blank=True,
                        help_text="Issue that produced the reprint this item belongs to",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="follow_up_issues",
                        to="issues.issue",
                    ),
                ),
                (
                    "reprint_order",
                    models.ForeignKey(
                        blank=True,
                        help_text="Replacement order created for a reprint resolution",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="orders.order",
                    ),
                ),
                (
                    "concluded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "carrier_fault"],
                        name="issue_status_carrier_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="IssueMessage",
            fields=[
                _id(),
                *_timestamps(),
                (
                    "sender_type",
                    models.CharField(choices=MESSAGE_SENDER_CHOICES, max_length=10),
                ),
                ("content", models.TextField(blank=True, default="")),
                ("image_urls", models.JSONField(blank=True, default=list)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                ("email_sent", models.BooleanField(default=False)),
                ("email_sent_at", models.DateTimeField(blank=True, null=True)),
                (
                    "issue",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="issues.issue",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="Resolution",
            fields=[
                _id(),
                *_timestamps(),
                ("type", models.CharField(choices=RESOLUTION_KIND_CHOICES, max_length=10)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=RESOLUTION_STATUS_CHOICES,
                        db_index=True,
                        default="PENDING",
                        max_length=20,
                        protected=True,
                    ),
                ),
                ("reason", models.TextField(blank=True, default="")),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "direct_refund",
                    models.BooleanField(
                        default=False,
                        help_text=(
                            "Admin full refund of the order (refund keyed by order, "
                            "not resolution)"
                        ),
                    ),
                ),
                (
                    "refund_amount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Requested amount; replaced by the amount actually refunded",
                        max_digits=10,
                        null=True,
                    ),
                ),
                ("stripe_refund_id", models.CharField(blank=True, default="", max_length=255)),
                ("failure_reason", models.TextField(blank=True, default="")),
                ("processing_started_at", models.DateTimeField(blank=True, null=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="resolutions",
                        to="orders.order",
                    ),
                ),
                (
                    "reprint_order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="orders.order",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
