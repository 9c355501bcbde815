"""
Consent summary and the coordinate-approval gate.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

from app.core.errors import StateConflictError

from .models import ConsentStatus, OverlapConsent


@dataclass(frozen=True)
class ConsentSummary:
    all_verified: bool
    any_rejected: bool
    total_consents: int
    verified_count: int
    rejected_count: int
    pending_count: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def consent_summary(consents: Iterable[OverlapConsent]) -> ConsentSummary:
    """
    Summarize the consents of an application. NOT_REQUIRED rows are ignored.

    With no relevant consents, all_verified is True.
    """
    relevant = [c for c in consents if c.consent_status != ConsentStatus.NOT_REQUIRED]
    verified = sum(1 for c in relevant if c.consent_status == ConsentStatus.VERIFIED)
    rejected = sum(1 for c in relevant if c.consent_status == ConsentStatus.REJECTED)
    return ConsentSummary(
        all_verified=verified == len(relevant),
        any_rejected=rejected > 0,
        total_consents=len(relevant),
        verified_count=verified,
        rejected_count=rejected,
        pending_count=len(relevant) - verified - rejected,
    )


class ConsentsNotVerifiedError(StateConflictError):
    """Coordinates cannot be approved while overlap consents are outstanding."""

    def __init__(self, summary: ConsentSummary, current_status: str | None = None):
        self.summary = summary
        super().__init__(
            f"{summary.verified_count} of {summary.total_consents} overlap consents verified "
            f"({summary.pending_count} pending, {summary.rejected_count} rejected)",
            current_status=current_status,
            error_code="CONSENTS_NOT_VERIFIED",
        )

    def extra(self) -> dict[str, Any]:
        return {
            **super().extra(),
            "pending_count": self.summary.pending_count,
            "rejected_count": self.summary.rejected_count,
        }


def ensure_all_verified(consents: Iterable[OverlapConsent], current_status: str | None = None):
    """
    Raises:
        ConsentsNotVerifiedError: Unless every relevant consent is VERIFIED
    """
    summary = consent_summary(consents)
    if not summary.all_verified:
        raise ConsentsNotVerifiedError(summary, current_status=current_status)
    return summary
