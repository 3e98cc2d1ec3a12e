"""
Persistence Models — Commitment Domain (Django ORM)

A customer's commitment history is an append-only chain of immutable
versions. Each version carries its own copy of the purchase log, so a
purchase entry exists once per commitment that inherited it, sharing the
same purchase_id across the chain.

Key architectural decisions:

- Customer is the unit of serialization. Every mutating use case locks the
  customer row with select_for_update() before reading or writing any of
  its commitments.
- Customer.active_commitment is an index over Commitment.status, rewritten in
  the same transaction as the status change it mirrors.
- A partial UNIQUE constraint allows at most one ACTIVE commitment per
  customer at the database level.
- predecessor is one-to-one, so every commitment has at most one successor
  and the chain stays linear.
- Purchase entries are never deleted; removal is the one-way removed flag.
"""

import uuid

from django.db import models
from django.db.models import Q
from django.utils import timezone


class CommitmentStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    WITHDRAWN = "WITHDRAWN", "Withdrawn"


class Customer(models.Model):
    """
    Owner of a commitment chain.

    The row itself carries no business state besides the active index; it
    exists so that all writes for one customer can be serialized on it.
    """

    customer_id = models.PositiveIntegerField(primary_key=True)

    active_commitment = models.OneToOneField(
        "Commitment",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    created_by = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Customer {self.customer_id}"


class Commitment(models.Model):
    """
    One immutable version of a customer's spend target and discount.

    target_amount, discount_percent and the validity window never change after
    creation. status moves from ACTIVE to WITHDRAWN exactly once, when a
    successor is created. balance is derived from purchase_log and stored for
    reads.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name="commitments",
    )

    target_amount = models.DecimalField(max_digits=14, decimal_places=2)
    discount_percent = models.PositiveSmallIntegerField()

    valid_from = models.DateTimeField()
    valid_to = models.DateTimeField()

    status = models.CharField(
        max_length=16,
        choices=CommitmentStatus.choices,
        default=CommitmentStatus.ACTIVE,
    )

    predecessor = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="successor",
    )

    balance = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    created_by = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["valid_from"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer"],
                condition=Q(status="ACTIVE"),
                name="uq_commitment_one_active_per_customer",
            ),
        ]

    def __str__(self):
        return f"Commitment {self.id} ({self.status}) - customer {self.customer_id}"


class PurchaseEntry(models.Model):
    """
    A purchase applied against one commitment.

    purchase_id is the chain-wide identity: when a successor is created the
    entry is copied with the same purchase_id, sequence, amounts, applied
    discount and removed flag. removed never reverts to False.
    """

    commitment = models.ForeignKey(
        Commitment,
        on_delete=models.CASCADE,
        related_name="purchase_log",
    )

    purchase_id = models.UUIDField(default=uuid.uuid4)

    # Insertion order within the log, preserved across copies.
    sequence = models.PositiveIntegerField()

    # Gross value; the only amount that counts towards the balance.
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    net_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    applied_discount = models.PositiveSmallIntegerField(null=True, blank=True)

    removed = models.BooleanField(default=False)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["commitment", "purchase_id"],
                name="uq_purchase_entry_per_commitment",
            ),
            models.UniqueConstraint(
                fields=["commitment", "sequence"],
                name="uq_purchase_entry_sequence",
            ),
        ]

    def __str__(self):
        flag = " (removed)" if self.removed else ""
        return f"Purchase {self.purchase_id} - {self.amount}{flag}"
