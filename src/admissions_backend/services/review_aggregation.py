"""Derived statistics over an application's review entries.

All functions here are pure: they read a review list and never touch storage.
Each result is independent of the order of the list.
"""

import math
from collections import Counter
from typing import Iterable, Sequence, Union

from admissions_backend.schemas.application import ReviewEntry
from admissions_backend.schemas.review import ReviewSummary

NOT_AVAILABLE = "N/A"
UNDECIDED = "Undecided"
UNDECIDED_TIE = "Undecided (Tie)"

RECOMMENDATION_LABELS = {
    "accept": "Strong Accept",
    "reject": "Reject",
    "waitlist": "Waitlist",
    "accepted": "Strong Accept",
    "rejected": "Reject",
    "waitlisted": "Waitlist",
    "second_round": "Second Round",
}


def average_score(reviews: Iterable[ReviewEntry]) -> Union[float, str]:
    """Arithmetic mean of the scores that are present.

    Returns:
        The mean, or ``"N/A"`` when no review carries a score
    """
    scores = [r.score for r in reviews if r.score is not None]
    if not scores:
        return NOT_AVAILABLE
    # fsum is exactly rounded, so any permutation gives the same mean
    return math.fsum(scores) / len(scores)


def format_average(value: Union[float, str]) -> str:
    """Average rounded to one decimal for display."""
    if value == NOT_AVAILABLE:
        return NOT_AVAILABLE
    return f"{value:.1f}"


def majority_decision(reviews: Iterable[ReviewEntry]) -> str:
    """Case-insensitive plurality of review decisions.

    Returns:
        The lower-cased decision with the strictly highest count,
        ``"Undecided (Tie)"`` when several share the highest count,
        or ``"Undecided"`` for an empty list
    """
    counts = Counter((r.decision or "undecided").strip().lower() for r in reviews)
    if not counts:
        return UNDECIDED

    top = max(counts.values())
    leaders = [decision for decision, count in counts.items() if count == top]
    if len(leaders) > 1:
        return UNDECIDED_TIE
    return leaders[0]


def flagged_count(reviews: Iterable[ReviewEntry]) -> int:
    """Number of reviews that raised a flag."""
    return sum(1 for r in reviews if r.flagged)


def recommendation_label(decision: str) -> str:
    """Display label for a decision; unknown values pass through verbatim."""
    return RECOMMENDATION_LABELS.get(decision.lower(), decision)


def summarize_reviews(user_id: str, reviews: Sequence[ReviewEntry]) -> ReviewSummary:
    """Build the summary view for one application's reviews."""
    average = average_score(reviews)
    majority = majority_decision(reviews)
    return ReviewSummary(
        user_id=user_id,
        review_count=len(reviews),
        average_score=None if average == NOT_AVAILABLE else average,
        average_display=format_average(average),
        majority_decision=majority,
        recommendation_label=recommendation_label(majority),
        flagged_count=flagged_count(reviews),
    )
