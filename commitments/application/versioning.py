"""
Application Use Case — Commitment Versioning

Creating a commitment never edits an existing one. If the customer already
has an ACTIVE commitment it is withdrawn and becomes the predecessor of the
new version, which inherits a copy of its purchase log and its balance.

Core guarantees provided:

- Validation first: an invalid discount or target amount is rejected before
  the database is touched.
- Serialization: the customer row is locked with select_for_update() so the
  check-for-active, withdraw and create steps cannot interleave with another
  writer for the same customer.
- Atomicity: withdraw + create + log copy + index update commit together or
  not at all. Storage failures surface as PersistenceError.
"""

import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from commitments.application.locks import lock_customer
from commitments.domain.balance import calculate_balance
from commitments.domain.exceptions import (
    InvalidDiscountPercentage,
    OutOfOrderCommitment,
    PersistenceError,
)
from commitments.domain.status import validity_end
from commitments.domain.validation import parse_amount, validate_discount_percent
from commitments.models import Commitment, CommitmentStatus, PurchaseEntry

logger = logging.getLogger(__name__)


def create_commitment(customer_id, target_amount, discount_percent, now=None, created_by=None):
    """
    Create a new ACTIVE commitment version for ``customer_id``.

    Returns the persisted Commitment. Raises InvalidDiscountPercentage,
    InvalidAmount or OutOfOrderCommitment without side effects, and
    PersistenceError after a full rollback. The new version must start
    strictly after its predecessor so the chain stays ordered by valid_from.
    """
    try:
        validate_discount_percent(discount_percent)
    except InvalidDiscountPercentage:
        logger.warning(
            "Rejected commitment: customer=%s discount_percent=%r",
            customer_id, discount_percent,
        )
        raise
    target_amount = parse_amount(target_amount, allow_zero=True)

    if now is None:
        now = timezone.now()

    try:
        with transaction.atomic():
            customer = lock_customer(customer_id, created_by=created_by)
            predecessor = customer.active_commitment

            if predecessor is not None and now <= predecessor.valid_from:
                logger.warning(
                    "Rejected commitment, out of order: customer=%s valid_from=%s predecessor=%s predecessor_valid_from=%s",
                    customer_id, now, predecessor.id, predecessor.valid_from,
                )
                raise OutOfOrderCommitment(customer_id, now, predecessor.valid_from)

            # Withdraw before inserting, the one-active constraint is checked per statement
            if predecessor is not None:
                predecessor.status = CommitmentStatus.WITHDRAWN
                predecessor.save(update_fields=["status"])

            commitment = Commitment.objects.create(
                customer=customer,
                target_amount=target_amount,
                discount_percent=discount_percent,
                valid_from=now,
                valid_to=validity_end(now),
                status=CommitmentStatus.ACTIVE,
                predecessor=predecessor,
                created_by=created_by,
            )

            if predecessor is not None:
                _carry_over_purchase_log(predecessor, commitment)

            customer.active_commitment = commitment
            customer.save(update_fields=["active_commitment"])
    except DatabaseError as exc:
        logger.exception(
            "Storage failure while creating commitment: customer=%s", customer_id,
        )
        raise PersistenceError("create_commitment") from exc

    if predecessor is not None:
        logger.info(
            "Commitment withdrawn: id=%s customer=%s successor=%s",
            predecessor.id, customer_id, commitment.id,
        )
    logger.info(
        "Commitment created: id=%s customer=%s target=%s discount=%s balance=%s",
        commitment.id, customer_id, commitment.target_amount,
        commitment.discount_percent, commitment.balance,
    )
    return commitment


def _carry_over_purchase_log(predecessor, commitment):
    carried = [
        PurchaseEntry(
            commitment=commitment,
            purchase_id=entry.purchase_id,
            sequence=entry.sequence,
            amount=entry.amount,
            net_amount=entry.net_amount,
            applied_discount=entry.applied_discount,
            removed=entry.removed,
            created_at=entry.created_at,
        )
        for entry in predecessor.purchase_log.all()
    ]
    if not carried:
        return

    PurchaseEntry.objects.bulk_create(carried)
    commitment.balance = calculate_balance(carried)
    commitment.save(update_fields=["balance"])
