"""Commitment status evaluation and validity window rules."""

from datetime import datetime

from commitments.models import CommitmentStatus


def validity_end(now):
    """Return 23:59:59 on December 31 of ``now``'s calendar year, keeping its tzinfo."""
    return datetime(now.year, 12, 31, 23, 59, 59, tzinfo=now.tzinfo)


def is_active(commitment, now):
    """
    True iff the commitment was never withdrawn and ``now`` lies inside
    [valid_from, valid_to], both ends inclusive.

    valid_to has whole-second resolution, so the entire final second belongs
    to the window: a commitment created at 23:59:59.5 on December 31 is usable
    until the year rolls over.

    Once valid_to has passed the commitment stays inactive for good, even
    though its stored status is still ACTIVE.
    """
    if commitment.status != CommitmentStatus.ACTIVE:
        return False
    return commitment.valid_from <= now and now.replace(microsecond=0) <= commitment.valid_to
