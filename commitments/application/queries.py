"""
Read-side use cases.

Reads never lock. The purchase log of a commitment is fetched in a single
query, so a cascade committed by another request is either fully visible in
it or not at all.
"""

from django.db.models import Prefetch

from commitments.application.locks import as_uuid
from commitments.domain.exceptions import CommitmentNotFound, CustomerNotFound
from commitments.domain.status import is_active
from commitments.models import Commitment, CommitmentStatus, Customer, PurchaseEntry


def get_commitment(commitment_id):
    pk = as_uuid(commitment_id)
    if pk is None:
        raise CommitmentNotFound(commitment_id)
    try:
        return Commitment.objects.prefetch_related("purchase_log").get(pk=pk)
    except Commitment.DoesNotExist:
        raise CommitmentNotFound(commitment_id)


def get_customer(customer_id):
    """Return the customer with its whole commitment chain prefetched, oldest first."""
    chain = Commitment.objects.order_by("valid_from").prefetch_related(
        Prefetch("purchase_log", queryset=PurchaseEntry.objects.order_by("sequence"))
    )
    try:
        return (
            Customer.objects
            .prefetch_related(Prefetch("commitments", queryset=chain))
            .get(customer_id=customer_id)
        )
    except Customer.DoesNotExist:
        raise CustomerNotFound(customer_id)


def list_customer_ids():
    return list(
        Customer.objects.order_by("customer_id").values_list("customer_id", flat=True)
    )


def get_active_commitment(customer_id, now):
    """The customer's commitment that is usable at ``now``, or None."""
    try:
        customer = Customer.objects.get(customer_id=customer_id)
    except Customer.DoesNotExist:
        raise CustomerNotFound(customer_id)
    if customer.active_commitment_id is None:
        return None
    commitment = get_commitment(customer.active_commitment_id)
    return commitment if is_active(commitment, now) else None


def get_active_commitments(customer_ids, now):
    """
    Bulk variant of get_active_commitment.

    Unknown customers and customers without a usable commitment are left out.
    """
    candidates = (
        Commitment.objects
        .filter(customer_id__in=list(customer_ids), status=CommitmentStatus.ACTIVE)
        .order_by("customer_id")
        .prefetch_related("purchase_log")
    )
    return [commitment for commitment in candidates if is_active(commitment, now)]
