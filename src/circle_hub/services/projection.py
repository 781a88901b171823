"""Projection of approved submissions into listing entries."""

from __future__ import annotations

from circle_hub.schemas.community import DEFAULT_LOCATION, PLACEHOLDER_LOGO, ApprovedCommunity
from circle_hub.schemas.submission import Submission, SubmissionStatus

FALLBACK_DESCRIPTION = "New approved community"


def to_approved_community(submission: Submission) -> ApprovedCommunity:
    """Build the listing entry for an approved submission.

    Paid communities never expose their join link; access is granted through
    the payment flow instead.

    Raises:
        ValueError: If the submission is not approved.
    """
    if submission.status is not SubmissionStatus.APPROVED:
        raise ValueError(
            f"Submission {submission.id} is {submission.status.value}, not approved"
        )

    join_type = "paid" if submission.is_paid else "free"
    description = submission.short_description or FALLBACK_DESCRIPTION
    return ApprovedCommunity(
        id=submission.id,
        name=submission.community_name,
        description=description,
        full_description=submission.long_description or description,
        category=submission.category,
        platform=submission.platform,
        members=0,
        verified=True,
        join_link="" if join_type == "paid" else (submission.join_link or ""),
        join_type=join_type,
        price_inr=submission.price_inr,
        logo=submission.logo_url or PLACEHOLDER_LOGO,
        location=DEFAULT_LOCATION,
        tags=[submission.category, submission.platform],
        admin=submission.founder_name,
        admin_bio=submission.founder_bio,
    )
