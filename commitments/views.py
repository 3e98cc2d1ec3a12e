"""
API Layer — Commitment Endpoints (Django REST Framework)

Thin controllers over the commitment use cases. Responsibilities are limited
to input coercion, delegation, rendering and translation of domain exceptions
into HTTP responses. No business rules are implemented here; locking and
transactional guarantees live in the application layer.

Error mapping:

- malformed input, InvalidDiscountPercentage, InvalidAmount,
  InvalidPurchaseId                                          -> 400
- CommitmentNotFound, PurchaseNotFound, CustomerNotFound     -> 404
- DuplicatePurchase, OutOfOrderCommitment                    -> 409
- InactiveCommitment, ActiveCommitmentRemovalForbidden       -> 422
- PersistenceError                                           -> 503
"""

from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from commitments.application.ledger import add_purchase, remove_purchase
from commitments.application.queries import (
    get_active_commitment,
    get_active_commitments,
    get_commitment,
    get_customer,
    list_customer_ids,
)
from commitments.application.versioning import create_commitment
from commitments.domain.balance import calculate_balance
from commitments.domain.exceptions import (
    ActiveCommitmentRemovalForbidden,
    CommitmentError,
    CommitmentNotFound,
    CustomerNotFound,
    DuplicatePurchase,
    InactiveCommitment,
    InvalidAmount,
    InvalidDiscountPercentage,
    InvalidPurchaseId,
    OutOfOrderCommitment,
    PersistenceError,
    PurchaseNotFound,
)
from commitments.domain.status import is_active

ERROR_STATUS = {
    InvalidDiscountPercentage: status.HTTP_400_BAD_REQUEST,
    InvalidAmount: status.HTTP_400_BAD_REQUEST,
    InvalidPurchaseId: status.HTTP_400_BAD_REQUEST,
    CommitmentNotFound: status.HTTP_404_NOT_FOUND,
    PurchaseNotFound: status.HTTP_404_NOT_FOUND,
    CustomerNotFound: status.HTTP_404_NOT_FOUND,
    DuplicatePurchase: status.HTTP_409_CONFLICT,
    OutOfOrderCommitment: status.HTTP_409_CONFLICT,
    InactiveCommitment: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ActiveCommitmentRemovalForbidden: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(exc):
    return Response(
        {"error": str(exc), "code": exc.code},
        status=ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST),
    )


def bad_request(message):
    return Response({"error": message}, status=status.HTTP_400_BAD_REQUEST)


def entry_payload(entry):
    return {
        "purchase_id": str(entry.purchase_id),
        "amount": str(entry.amount),
        "net_amount": str(entry.net_amount) if entry.net_amount is not None else None,
        "applied_discount": entry.applied_discount,
        "removed": entry.removed,
        "created_at": entry.created_at.isoformat(),
    }


def commitment_payload(commitment, now):
    log = list(commitment.purchase_log.all())
    return {
        "id": str(commitment.id),
        "customer_id": commitment.customer_id,
        "target_amount": str(commitment.target_amount),
        "discount_percent": commitment.discount_percent,
        "valid_from": commitment.valid_from.isoformat(),
        "valid_to": commitment.valid_to.isoformat(),
        "status": commitment.status,
        "predecessor_id": str(commitment.predecessor_id) if commitment.predecessor_id else None,
        "is_active": is_active(commitment, now),
        "balance": str(calculate_balance(log)),
        "purchase_log": [entry_payload(entry) for entry in log],
        "created_by": commitment.created_by,
    }


def _strict_int(value):
    """int, or an integer-valued string; anything else (floats, bools) raises ValueError."""
    if isinstance(value, bool):
        raise ValueError(f"{value!r} is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip())
    raise ValueError(f"{value!r} is not an integer")


def _optional_int(value):
    if value in (None, ""):
        return None
    return _strict_int(value)


class CommitmentListView(APIView):
    """
    POST /api/commitments/

    Creates a new commitment version, withdrawing the customer's active one.
    """

    def post(self, request):
        customer_id = request.data.get("customer_id")
        target_amount = request.data.get("target_amount")
        discount_percent = request.data.get("discount_percent")

        if customer_id in (None, "") or target_amount in (None, "") or discount_percent in (None, ""):
            return bad_request("customer_id, target_amount, and discount_percent are required.")

        try:
            customer_id = _strict_int(customer_id)
            created_by = _optional_int(request.data.get("created_by"))
        except ValueError:
            return bad_request("customer_id and created_by must be integers.")

        if customer_id < 0 or (created_by is not None and created_by < 0):
            return bad_request("customer_id and created_by must not be negative.")

        try:
            discount_percent = _strict_int(discount_percent)
        except ValueError:
            return error_response(InvalidDiscountPercentage(discount_percent))

        now = timezone.now()
        try:
            commitment = create_commitment(
                customer_id, target_amount, discount_percent, now=now, created_by=created_by,
            )
        except CommitmentError as exc:
            return error_response(exc)

        commitment = get_commitment(commitment.id)
        return Response(commitment_payload(commitment, now), status=status.HTTP_201_CREATED)


class CommitmentDetailView(APIView):
    """GET /api/commitments/<uuid>/"""

    def get(self, request, commitment_id):
        try:
            commitment = get_commitment(commitment_id)
        except CommitmentNotFound as exc:
            return error_response(exc)
        return Response(commitment_payload(commitment, timezone.now()))


class PurchaseListView(APIView):
    """
    POST /api/commitments/<uuid>/purchases/

    ``amount`` is the gross value; ``net_amount``, ``applied_discount`` and
    ``purchase_id`` are optional.
    """

    def post(self, request, commitment_id):
        amount = request.data.get("amount")
        purchase_id = request.data.get("purchase_id")
        net_amount = request.data.get("net_amount")
        applied_discount = request.data.get("applied_discount")

        if amount in (None, ""):
            return bad_request("amount is required.")

        try:
            applied_discount = _optional_int(applied_discount)
        except ValueError:
            return error_response(InvalidDiscountPercentage(applied_discount))

        try:
            entry = add_purchase(
                commitment_id,
                amount,
                purchase_id=purchase_id if purchase_id not in (None, "") else None,
                net_amount=net_amount if net_amount not in (None, "") else None,
                applied_discount=applied_discount,
            )
        except CommitmentError as exc:
            return error_response(exc)

        payload = entry_payload(entry)
        payload["commitment_id"] = str(commitment_id)
        payload["balance"] = str(entry.commitment.balance)
        return Response(payload, status=status.HTTP_201_CREATED)


class PurchaseDetailView(APIView):
    """
    DELETE /api/commitments/<uuid>/purchases/<uuid>/

    Logically removes a purchase through a withdrawn commitment.
    """

    def delete(self, request, commitment_id, purchase_id):
        try:
            touched = remove_purchase(purchase_id, commitment_id)
        except CommitmentError as exc:
            return error_response(exc)

        return Response({
            "purchase_id": str(purchase_id),
            "commitment_id": str(commitment_id),
            "affected_commitments": [
                {"id": str(c.id), "balance": str(c.balance)} for c in touched
            ],
        })


class CustomerListView(APIView):
    """GET /api/customers/"""

    def get(self, request):
        return Response({"customer_ids": list_customer_ids()})


class CustomerDetailView(APIView):
    """GET /api/customers/<int>/ with the full commitment chain, oldest first."""

    def get(self, request, customer_id):
        try:
            customer = get_customer(customer_id)
        except CustomerNotFound as exc:
            return error_response(exc)

        now = timezone.now()
        return Response({
            "customer_id": customer.customer_id,
            "active_commitment_id": (
                str(customer.active_commitment_id) if customer.active_commitment_id else None
            ),
            "created_by": customer.created_by,
            "created_at": customer.created_at.isoformat(),
            "commitments": [commitment_payload(c, now) for c in customer.commitments.all()],
        })


class ActiveCommitmentView(APIView):
    """GET /api/customers/<int>/active-commitment/"""

    def get(self, request, customer_id):
        now = timezone.now()
        try:
            commitment = get_active_commitment(customer_id, now)
        except CustomerNotFound as exc:
            return error_response(exc)

        return Response({
            "has_active_commitment": commitment is not None,
            "active_commitment": commitment_payload(commitment, now) if commitment else None,
        })


class ActiveCommitmentBulkView(APIView):
    """POST /api/customers/active-commitments/ with {"customer_ids": [...]}"""

    def post(self, request):
        customer_ids = request.data.get("customer_ids")
        if not isinstance(customer_ids, list):
            return bad_request("customer_ids must be a list of integers.")
        try:
            customer_ids = [_strict_int(customer_id) for customer_id in customer_ids]
        except (TypeError, ValueError):
            return bad_request("customer_ids must be a list of integers.")

        now = timezone.now()
        commitments = get_active_commitments(customer_ids, now)
        return Response({
            "active_commitments": [commitment_payload(c, now) for c in commitments],
        })
