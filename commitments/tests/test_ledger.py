import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from commitments.application import ledger
from commitments.application.ledger import add_purchase, remove_purchase
from commitments.application.versioning import create_commitment
from commitments.domain.balance import calculate_balance
from commitments.domain.exceptions import (
    ActiveCommitmentRemovalForbidden,
    CommitmentNotFound,
    DuplicatePurchase,
    InactiveCommitment,
    InvalidAmount,
    InvalidDiscountPercentage,
    InvalidPurchaseId,
    PersistenceError,
    PurchaseNotFound,
)
from commitments.models import Commitment, PurchaseEntry

UTC = timezone.utc

MARCH_14 = datetime(2024, 3, 14, tzinfo=UTC)
MARCH_15 = datetime(2024, 3, 15, tzinfo=UTC)
APRIL_1 = datetime(2024, 4, 1, tzinfo=UTC)
JUNE_1 = datetime(2024, 6, 1, tzinfo=UTC)
JULY_1 = datetime(2024, 7, 1, tzinfo=UTC)


class AddPurchaseTest(TestCase):

    def setUp(self):
        self.commitment = create_commitment(42, 1000, 3, now=MARCH_14)

    def test_adds_entry_and_updates_balance(self):
        entry = add_purchase(self.commitment.id, 200, now=MARCH_15)

        self.assertEqual(entry.amount, Decimal("200"))
        self.assertFalse(entry.removed)
        self.assertEqual(entry.sequence, 1)

        self.commitment.refresh_from_db()
        self.assertEqual(self.commitment.balance, Decimal("200"))

    def test_purchases_accumulate_in_order(self):
        first = add_purchase(self.commitment.id, 200, now=MARCH_15)
        second = add_purchase(self.commitment.id, "30.25", now=MARCH_15)

        self.commitment.refresh_from_db()
        self.assertEqual(self.commitment.balance, Decimal("230.25"))
        self.assertEqual(
            [e.purchase_id for e in self.commitment.purchase_log.all()],
            [first.purchase_id, second.purchase_id],
        )
        self.assertEqual(second.sequence, 2)

    def test_caller_supplied_purchase_id(self):
        purchase_id = uuid.uuid4()
        entry = add_purchase(self.commitment.id, 10, now=MARCH_15, purchase_id=str(purchase_id))
        self.assertEqual(entry.purchase_id, purchase_id)

    def test_duplicate_purchase_id_rejected(self):
        purchase_id = uuid.uuid4()
        add_purchase(self.commitment.id, 10, now=MARCH_15, purchase_id=purchase_id)

        with self.assertRaises(DuplicatePurchase):
            add_purchase(self.commitment.id, 99, now=MARCH_15, purchase_id=purchase_id)

        self.commitment.refresh_from_db()
        self.assertEqual(self.commitment.balance, Decimal("10"))
        self.assertEqual(PurchaseEntry.objects.count(), 1)

    def test_invalid_amount(self):
        for amount in (0, -5, "abc", "1.999"):
            with self.assertRaises(InvalidAmount):
                add_purchase(self.commitment.id, amount, now=MARCH_15)
        self.assertEqual(PurchaseEntry.objects.count(), 0)

    def test_unknown_commitment(self):
        with self.assertRaises(CommitmentNotFound):
            add_purchase(uuid.uuid4(), 10, now=MARCH_15)
        with self.assertRaises(CommitmentNotFound):
            add_purchase("not-a-uuid", 10, now=MARCH_15)

    def test_withdrawn_commitment_rejects_purchase(self):
        create_commitment(42, 1000, 5, now=JUNE_1)

        with self.assertRaises(InactiveCommitment):
            add_purchase(self.commitment.id, 50, now=JULY_1)

        self.commitment.refresh_from_db()
        self.assertEqual(self.commitment.balance, Decimal("0"))
        self.assertEqual(self.commitment.purchase_log.count(), 0)

    def test_expired_commitment_rejects_purchase(self):
        with self.assertRaises(InactiveCommitment):
            add_purchase(self.commitment.id, 50, now=datetime(2025, 1, 1, tzinfo=UTC))

        self.commitment.refresh_from_db()
        self.assertEqual(self.commitment.balance, Decimal("0"))

    def test_malformed_purchase_id_rejected(self):
        with self.assertRaises(InvalidPurchaseId) as ctx:
            add_purchase(self.commitment.id, 10, now=MARCH_15, purchase_id="not-a-uuid")

        self.assertEqual(ctx.exception.code, "INVALID_PURCHASE_ID")
        self.assertEqual(PurchaseEntry.objects.count(), 0)

    def test_records_net_amount_and_applied_discount(self):
        entry = add_purchase(
            self.commitment.id, "127.00", now=MARCH_15, net_amount="100.00", applied_discount=3,
        )
        entry.refresh_from_db()

        self.assertEqual(entry.amount, Decimal("127.00"))
        self.assertEqual(entry.net_amount, Decimal("100.00"))
        self.assertEqual(entry.applied_discount, 3)
        # Only the gross amount counts
        self.commitment.refresh_from_db()
        self.assertEqual(self.commitment.balance, Decimal("127.00"))

    def test_invalid_net_amount_or_applied_discount_rejected(self):
        with self.assertRaises(InvalidAmount):
            add_purchase(self.commitment.id, 10, now=MARCH_15, net_amount=-1)
        with self.assertRaises(InvalidDiscountPercentage):
            add_purchase(self.commitment.id, 10, now=MARCH_15, applied_discount=9)
        self.assertEqual(PurchaseEntry.objects.count(), 0)

    def test_purchase_at_creation_instant_in_final_second_of_year(self):
        created = datetime(2024, 12, 31, 23, 59, 59, 500000, tzinfo=UTC)
        late = create_commitment(99, 500, 2, now=created)

        entry = add_purchase(late.id, 40, now=created)

        self.assertEqual(entry.amount, Decimal("40"))
        late.refresh_from_db()
        self.assertEqual(late.balance, Decimal("40"))

    def test_purchase_before_valid_from_rejected(self):
        with self.assertRaises(InactiveCommitment):
            add_purchase(self.commitment.id, 50, now=datetime(2024, 3, 13, tzinfo=UTC))


class RemovePurchaseTest(TestCase):
    """
    Chain used by most tests: v1 (withdrawn) -> v2 (withdrawn) -> v3 (active),
    with one 200 purchase made on v1 and one 50 purchase made on v2.
    """

    def setUp(self):
        self.v1 = create_commitment(42, 1000, 3, now=MARCH_14)
        self.early = add_purchase(self.v1.id, 200, now=MARCH_15)
        self.v2 = create_commitment(42, 1000, 4, now=APRIL_1)
        self.late = add_purchase(self.v2.id, 50, now=APRIL_1)
        self.v3 = create_commitment(42, 1000, 5, now=JUNE_1)

    def entry(self, commitment, purchase):
        return PurchaseEntry.objects.get(commitment=commitment, purchase_id=purchase.purchase_id)

    def balances(self):
        return [
            Commitment.objects.get(pk=c.pk).balance for c in (self.v1, self.v2, self.v3)
        ]

    def test_cascades_to_every_successor(self):
        touched = remove_purchase(self.early.purchase_id, self.v1.id)

        self.assertEqual([c.id for c in touched], [self.v1.id, self.v2.id, self.v3.id])
        for commitment in (self.v1, self.v2, self.v3):
            self.assertTrue(self.entry(commitment, self.early).removed)
        self.assertEqual(self.balances(), [Decimal("0"), Decimal("50"), Decimal("50")])

    def test_never_touches_predecessors(self):
        remove_purchase(self.early.purchase_id, self.v2.id)

        self.assertFalse(self.entry(self.v1, self.early).removed)
        self.assertTrue(self.entry(self.v2, self.early).removed)
        self.assertTrue(self.entry(self.v3, self.early).removed)
        self.assertEqual(self.balances(), [Decimal("200"), Decimal("50"), Decimal("50")])

    def test_entries_keep_their_identity_and_amount(self):
        remove_purchase(self.late.purchase_id, self.v2.id)

        entry = self.entry(self.v3, self.late)
        self.assertTrue(entry.removed)
        self.assertEqual(entry.amount, Decimal("50"))
        self.assertEqual(PurchaseEntry.objects.filter(purchase_id=self.late.purchase_id).count(), 2)

    def test_active_commitment_rejects_removal(self):
        with self.assertRaises(ActiveCommitmentRemovalForbidden):
            remove_purchase(self.early.purchase_id, self.v3.id)

        self.assertFalse(self.entry(self.v3, self.early).removed)
        self.assertEqual(self.balances(), [Decimal("200"), Decimal("250"), Decimal("250")])

    def test_purchase_not_in_log(self):
        # The 50 purchase was made on v2, so v1 never carried it
        with self.assertRaises(PurchaseNotFound):
            remove_purchase(self.late.purchase_id, self.v1.id)
        with self.assertRaises(PurchaseNotFound):
            remove_purchase(uuid.uuid4(), self.v1.id)
        with self.assertRaises(PurchaseNotFound):
            remove_purchase("garbage", self.v1.id)

        self.assertFalse(self.entry(self.v2, self.late).removed)

    def test_unknown_commitment(self):
        with self.assertRaises(CommitmentNotFound):
            remove_purchase(self.early.purchase_id, uuid.uuid4())

    def test_repeated_removal_is_idempotent(self):
        remove_purchase(self.early.purchase_id, self.v1.id)
        remove_purchase(self.early.purchase_id, self.v1.id)

        self.assertEqual(self.balances(), [Decimal("0"), Decimal("50"), Decimal("50")])

    def test_cascade_skips_successor_without_the_entry(self):
        # Simulate a successor that never carried the entry
        PurchaseEntry.objects.filter(commitment=self.v2, purchase_id=self.early.purchase_id).delete()

        touched = remove_purchase(self.early.purchase_id, self.v1.id)

        self.assertEqual([c.id for c in touched], [self.v1.id, self.v3.id])
        self.assertTrue(self.entry(self.v3, self.early).removed)

    def test_balance_matches_log_everywhere(self):
        remove_purchase(self.early.purchase_id, self.v1.id)
        remove_purchase(self.late.purchase_id, self.v2.id)

        for commitment in Commitment.objects.all():
            self.assertEqual(commitment.balance, calculate_balance(commitment.purchase_log.all()))

    def test_storage_failure_mid_cascade_rolls_back(self):
        real_mark_removed = ledger._mark_removed
        calls = []

        def fail_on_second_link(commitment, purchase_id):
            if calls:
                raise DatabaseError("connection lost")
            calls.append(commitment.id)
            return real_mark_removed(commitment, purchase_id)

        with mock.patch(
            "commitments.application.ledger._mark_removed",
            side_effect=fail_on_second_link,
        ):
            with self.assertRaises(PersistenceError):
                remove_purchase(self.early.purchase_id, self.v1.id)

        self.assertEqual(calls, [self.v1.id])
        for commitment in (self.v1, self.v2, self.v3):
            self.assertFalse(self.entry(commitment, self.early).removed)
        self.assertEqual(self.balances(), [Decimal("200"), Decimal("250"), Decimal("250")])
