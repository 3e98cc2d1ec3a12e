"""
Per-customer serialization.

All writes touching a customer's chain take a row lock on the Customer
record first. Operations on different customers never wait on each other.
Both helpers must be called inside transaction.atomic().
"""

import uuid

from commitments.domain.exceptions import CommitmentNotFound
from commitments.models import Commitment, Customer


def as_uuid(value):
    """Return ``value`` as a UUID, or None when it cannot be one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def lock_customer(customer_id, created_by=None):
    """Lock the customer row, creating the customer on first use."""
    Customer.objects.get_or_create(
        customer_id=customer_id,
        defaults={"created_by": created_by},
    )
    return Customer.objects.select_for_update().get(customer_id=customer_id)


def lock_commitment(commitment_id):
    """
    Lock the owning customer, then read the commitment.

    The commitment is re-read after the lock is held so that status and
    purchase log reflect every write committed before this one.
    """
    pk = as_uuid(commitment_id)
    if pk is None:
        raise CommitmentNotFound(commitment_id)

    customer_id = (
        Commitment.objects
        .filter(pk=pk)
        .values_list("customer_id", flat=True)
        .first()
    )
    if customer_id is None:
        raise CommitmentNotFound(commitment_id)

    Customer.objects.select_for_update().get(customer_id=customer_id)
    return Commitment.objects.get(pk=pk)
