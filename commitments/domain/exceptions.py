class CommitmentError(Exception):
    """Base class for every business rule violation raised by the commitment core."""

    code = "COMMITMENT_ERROR"


class InvalidDiscountPercentage(CommitmentError):
    """Raised when a discount percentage outside 0..6 is requested."""

    code = "INVALID_DISCOUNT_PERCENTAGE"

    def __init__(self, discount_percent):
        self.discount_percent = discount_percent
        super().__init__(
            f"Discount percentage must be an integer between 0 and 6, got {discount_percent!r}"
        )


class InvalidAmount(CommitmentError):
    """Raised when a purchase amount or target amount is not acceptable."""

    code = "INVALID_AMOUNT"

    def __init__(self, amount, reason):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class CommitmentNotFound(CommitmentError):
    code = "COMMITMENT_NOT_FOUND"

    def __init__(self, commitment_id):
        self.commitment_id = commitment_id
        super().__init__(f"Commitment {commitment_id} not found")


class CustomerNotFound(CommitmentError):
    code = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id):
        self.customer_id = customer_id
        super().__init__(f"Customer {customer_id} not found")


class PurchaseNotFound(CommitmentError):
    code = "PURCHASE_NOT_FOUND"

    def __init__(self, purchase_id, commitment_id):
        self.purchase_id = purchase_id
        self.commitment_id = commitment_id
        super().__init__(
            f"Purchase {purchase_id} is not in the log of commitment {commitment_id}"
        )


class DuplicatePurchase(CommitmentError):
    """Raised when a purchase id is already present in the target commitment's log."""

    code = "DUPLICATE_PURCHASE"

    def __init__(self, purchase_id, commitment_id):
        self.purchase_id = purchase_id
        self.commitment_id = commitment_id
        super().__init__(
            f"Purchase {purchase_id} is already logged on commitment {commitment_id}"
        )


class InactiveCommitment(CommitmentError):
    """Raised when a purchase is added to a withdrawn or expired commitment."""

    code = "INACTIVE_COMMITMENT"

    def __init__(self, commitment_id):
        self.commitment_id = commitment_id
        super().__init__(
            f"Commitment {commitment_id} is not active; purchases cannot be added"
        )


class ActiveCommitmentRemovalForbidden(CommitmentError):
    """Raised when a purchase removal targets a commitment that was never withdrawn."""

    code = "ACTIVE_COMMITMENT_REMOVAL_FORBIDDEN"

    def __init__(self, commitment_id):
        self.commitment_id = commitment_id
        super().__init__(
            f"Commitment {commitment_id} is active; purchases can only be removed "
            f"through a withdrawn commitment"
        )


class PersistenceError(CommitmentError):
    """Raised when the storage layer fails. The transaction has been rolled back."""

    code = "PERSISTENCE_ERROR"

    def __init__(self, operation):
        self.operation = operation
        super().__init__(f"Storage failure during {operation}; no changes were applied")


class InvalidPurchaseId(CommitmentError):
    code = "INVALID_PURCHASE_ID"

    def __init__(self, purchase_id):
        self.purchase_id = purchase_id
        super().__init__(f"Purchase id must be a UUID, got {purchase_id!r}")


class OutOfOrderCommitment(CommitmentError):
    """Raised when a new version would not start after its predecessor."""

    code = "OUT_OF_ORDER_COMMITMENT"

    def __init__(self, customer_id, valid_from, predecessor_valid_from):
        self.customer_id = customer_id
        self.valid_from = valid_from
        self.predecessor_valid_from = predecessor_valid_from
        super().__init__(
            f"Customer {customer_id}: new commitment starting {valid_from.isoformat()} "
            f"must start after the current one ({predecessor_valid_from.isoformat()})"
        )
