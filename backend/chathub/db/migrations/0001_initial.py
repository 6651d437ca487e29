# Generated manually for chat sessions, messages, plans, subscriptions and usage logs

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ChatSession",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("chat_id", models.CharField(help_text="Client-generated chat identifier", max_length=64, unique=True)),
                ("title", models.CharField(blank=True, default="", max_length=255)),
                (
                    "summary",
                    models.TextField(
                        blank=True,
                        help_text="Rolling summary of earlier turns, injected into the system prompt",
                        null=True,
                    ),
                ),
                ("brainstorm_mode", models.BooleanField(default=False)),
                ("brainstorm_settings", models.JSONField(blank=True, default=dict)),
                ("deleted", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="chat_sessions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Chat Session",
                "verbose_name_plural": "Chat Sessions",
                "db_table": "chat_sessions",
                "ordering": ["-updated_at"],
                "indexes": [
                    models.Index(fields=["user", "deleted", "-updated_at"], name="chat_sessio_user_id_0b6f2e_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_input", models.TextField(blank=True, default="")),
                ("api_response", models.TextField(blank=True, default="")),
                (
                    "input_type",
                    models.CharField(
                        choices=[("text", "Text"), ("brainstorm", "Brainstorm"), ("summary", "Summary")],
                        default="text",
                        max_length=20,
                    ),
                ),
                (
                    "output_type",
                    models.CharField(
                        choices=[("text", "Text"), ("brainstorm", "Brainstorm"), ("summary", "Summary")],
                        default="text",
                        max_length=20,
                    ),
                ),
                ("model", models.CharField(blank=True, default="", max_length=50)),
                ("credits_deducted", models.DecimalField(decimal_places=6, default=Decimal("0"), max_digits=14)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                ("sequence", models.PositiveIntegerField(help_text="Monotonic position of the row inside its chat")),
                (
                    "context_id",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Correlation id shared by the rows of one request",
                        max_length=64,
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="db.chatsession",
                    ),
                ),
            ],
            options={
                "verbose_name": "Message",
                "verbose_name_plural": "Messages",
                "db_table": "messages",
                "ordering": ["sequence"],
                "indexes": [
                    models.Index(fields=["session", "timestamp"], name="messages_session_3c1d9a_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("session", "sequence"), name="messages_session_sequence_uniq"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Plan",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                ("price", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("credits_per_month", models.DecimalField(decimal_places=6, default=Decimal("0"), max_digits=14)),
                ("stripe_product_id", models.CharField(blank=True, default="", max_length=255)),
                ("stripe_price_id", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Plan",
                "verbose_name_plural": "Plans",
                "db_table": "plans",
                "ordering": ["price"],
            },
        ),
        migrations.CreateModel(
            name="Subscription",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("Active", "Active"),
                            ("Pending Downgrade", "Pending Downgrade"),
                            ("Canceled", "Canceled"),
                        ],
                        default="Active",
                        max_length=20,
                    ),
                ),
                ("start_date", models.DateTimeField()),
                (
                    "end_date",
                    models.DateTimeField(
                        help_text="End of the current period; effective date of a pending downgrade"
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("Paid", "Paid"), ("Free", "Free"), ("Failed", "Failed")],
                        default="Paid",
                        max_length=20,
                    ),
                ),
                (
                    "provider_ref",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Stripe subscription id, or the free tier marker",
                        max_length=255,
                    ),
                ),
                ("provider_info", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "plan",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="subscriptions",
                        to="db.plan",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="subscriptions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Subscription",
                "verbose_name_plural": "Subscriptions",
                "db_table": "subscriptions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "status"], name="subscriptio_user_id_5e2a41_idx"),
                    models.Index(fields=["provider_ref"], name="subscriptio_provide_9a7c10_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CreditTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("credits_deducted", models.DecimalField(decimal_places=6, default=Decimal("0"), max_digits=14)),
                ("credits_added", models.DecimalField(decimal_places=6, default=Decimal("0"), max_digits=14)),
                ("payment_method", models.CharField(blank=True, default="", max_length=50)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "subscription",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="credit_transactions",
                        to="db.subscription",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="credit_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Credit Transaction",
                "verbose_name_plural": "Credit Transactions",
                "db_table": "credit_transactions",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="APIUsageLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("model_name", models.CharField(max_length=50)),
                ("usage_type", models.CharField(default="chat", max_length=20)),
                ("prompt_tokens", models.IntegerField(default=0)),
                ("completion_tokens", models.IntegerField(default=0)),
                ("tokens_used", models.IntegerField(default=0)),
                ("credits_deducted", models.DecimalField(decimal_places=6, default=Decimal("0"), max_digits=14)),
                (
                    "api_cost",
                    models.DecimalField(
                        decimal_places=8,
                        default=Decimal("0"),
                        help_text="Estimated provider cost in USD",
                        max_digits=14,
                    ),
                ),
                ("messages_used", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "session",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="usage_logs",
                        to="db.chatsession",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="usage_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "API Usage Log",
                "verbose_name_plural": "API Usage Logs",
                "db_table": "api_usage_logs",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "-created_at"], name="api_usage_l_user_id_4f8b2c_idx"),
                ],
            },
        ),
    ]
