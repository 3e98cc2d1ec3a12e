import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("customer_id", models.PositiveIntegerField(primary_key=True, serialize=False)),
                ("created_by", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="Commitment",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False,
                    ),
                ),
                ("target_amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("discount_percent", models.PositiveSmallIntegerField()),
                ("valid_from", models.DateTimeField()),
                ("valid_to", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[("ACTIVE", "Active"), ("WITHDRAWN", "Withdrawn")],
                        default="ACTIVE",
                        max_length=16,
                    ),
                ),
                ("balance", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("created_by", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="commitments",
                        to="commitments.customer",
                    ),
                ),
                (
                    "predecessor",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="successor",
                        to="commitments.commitment",
                    ),
                ),
            ],
            options={
                "ordering": ["valid_from"],
            },
        ),
        migrations.AddField(
            model_name="customer",
            name="active_commitment",
            field=models.OneToOneField(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="commitments.commitment",
            ),
        ),
        migrations.CreateModel(
            name="PurchaseEntry",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID",
                    ),
                ),
                ("purchase_id", models.UUIDField(default=uuid.uuid4)),
                ("sequence", models.PositiveIntegerField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("removed", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "commitment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="purchase_log",
                        to="commitments.commitment",
                    ),
                ),
            ],
            options={
                "ordering": ["sequence"],
            },
        ),
        migrations.AddConstraint(
            model_name="commitment",
            constraint=models.UniqueConstraint(
                condition=models.Q(("status", "ACTIVE")),
                fields=("customer",),
                name="uq_commitment_one_active_per_customer",
            ),
        ),
        migrations.AddConstraint(
            model_name="purchaseentry",
            constraint=models.UniqueConstraint(
                fields=("commitment", "purchase_id"),
                name="uq_purchase_entry_per_commitment",
            ),
        ),
        migrations.AddConstraint(
            model_name="purchaseentry",
            constraint=models.UniqueConstraint(
                fields=("commitment", "sequence"),
                name="uq_purchase_entry_sequence",
            ),
        ),
    ]
