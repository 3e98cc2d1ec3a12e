"""
Application Use Case — Purchase Ledger

Purchases are appended to the currently active commitment and are removed
only retroactively, through a withdrawn commitment. A removal marks the entry
on that commitment and on every later version of the chain that carries the
same purchase_id; earlier versions are never touched.

Core guarantees provided:

- Validation first: amounts are checked before any storage access.
- Serialization: the owning customer row is locked with select_for_update().
- Atomicity: a cascade over several chain links commits as one transaction,
  so readers never observe a partially applied removal.
- Balance consistency: every touched commitment has its balance recomputed
  from its own log before the transaction commits.
"""

import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from commitments.application.locks import as_uuid, lock_commitment
from commitments.domain.balance import calculate_balance
from commitments.domain.exceptions import (
    ActiveCommitmentRemovalForbidden,
    DuplicatePurchase,
    InactiveCommitment,
    InvalidPurchaseId,
    PersistenceError,
    PurchaseNotFound,
)
from commitments.domain.status import is_active
from commitments.domain.validation import parse_amount, validate_discount_percent
from commitments.models import Commitment, CommitmentStatus, PurchaseEntry

logger = logging.getLogger(__name__)


def add_purchase(
    commitment_id, amount, now=None, purchase_id=None, net_amount=None, applied_discount=None,
):
    """
    Append a purchase to an active commitment and return the new PurchaseEntry.

    ``amount`` is the gross value and the only one counted in the balance.
    ``net_amount`` and ``applied_discount`` are recorded as given. ``purchase_id``
    is optional; a fresh UUID is issued when omitted.
    """
    amount = parse_amount(amount)
    if net_amount is not None:
        net_amount = parse_amount(net_amount, allow_zero=True)
    if applied_discount is not None:
        validate_discount_percent(applied_discount)
    if purchase_id is not None and as_uuid(purchase_id) is None:
        raise InvalidPurchaseId(purchase_id)
    if now is None:
        now = timezone.now()

    try:
        with transaction.atomic():
            commitment = lock_commitment(commitment_id)

            if not is_active(commitment, now):
                logger.warning(
                    "Purchase rejected, commitment inactive: commitment=%s status=%s valid_to=%s",
                    commitment.id, commitment.status, commitment.valid_to,
                )
                raise InactiveCommitment(commitment.id)

            log = list(commitment.purchase_log.all())
            create_kwargs = {}
            if purchase_id is not None:
                purchase_id = as_uuid(purchase_id)
                if any(entry.purchase_id == purchase_id for entry in log):
                    logger.warning(
                        "Duplicate purchase: purchase=%s commitment=%s",
                        purchase_id, commitment.id,
                    )
                    raise DuplicatePurchase(purchase_id, commitment.id)
                create_kwargs["purchase_id"] = purchase_id

            entry = PurchaseEntry.objects.create(
                commitment=commitment,
                sequence=log[-1].sequence + 1 if log else 1,
                amount=amount,
                net_amount=net_amount,
                applied_discount=applied_discount,
                **create_kwargs,
            )
            log.append(entry)
            _store_balance(commitment, log)
    except DatabaseError as exc:
        logger.exception(
            "Storage failure while adding purchase: commitment=%s", commitment_id,
        )
        raise PersistenceError("add_purchase") from exc

    logger.info(
        "Purchase added: purchase=%s commitment=%s amount=%s balance=%s",
        entry.purchase_id, commitment.id, amount, commitment.balance,
    )
    return entry


def remove_purchase(purchase_id, from_commitment_id):
    """
    Mark ``purchase_id`` removed on a withdrawn commitment and all its successors.

    Successors that do not carry the entry are skipped. Returns the
    commitments that were updated, oldest first.
    """
    purchase_uuid = as_uuid(purchase_id)

    try:
        with transaction.atomic():
            source = lock_commitment(from_commitment_id)

            if source.status == CommitmentStatus.ACTIVE:
                logger.warning(
                    "Removal rejected, commitment is active: purchase=%s commitment=%s",
                    purchase_id, source.id,
                )
                raise ActiveCommitmentRemovalForbidden(source.id)

            if purchase_uuid is None or not _mark_removed(source, purchase_uuid):
                raise PurchaseNotFound(purchase_id, source.id)

            touched = [source]
            current = Commitment.objects.filter(predecessor=source).first()
            while current is not None:
                if _mark_removed(current, purchase_uuid):
                    touched.append(current)
                else:
                    logger.info(
                        "Cascade skipped commitment without the entry: purchase=%s commitment=%s",
                        purchase_uuid, current.id,
                    )
                current = Commitment.objects.filter(predecessor=current).first()
    except DatabaseError as exc:
        logger.exception(
            "Storage failure while removing purchase: purchase=%s commitment=%s",
            purchase_id, from_commitment_id,
        )
        raise PersistenceError("remove_purchase") from exc

    logger.info(
        "Purchase removed: purchase=%s from=%s affected=%s",
        purchase_uuid, source.id, [str(c.id) for c in touched],
    )
    return touched


def _mark_removed(commitment, purchase_id):
    """Flag the entry on one commitment and recompute its balance. False if absent."""
    log = list(commitment.purchase_log.all())
    entry = next((e for e in log if e.purchase_id == purchase_id), None)
    if entry is None:
        return False

    if not entry.removed:
        entry.removed = True
        entry.save(update_fields=["removed"])
    _store_balance(commitment, log)
    return True


def _store_balance(commitment, log):
    commitment.balance = calculate_balance(log)
    commitment.save(update_fields=["balance"])
