"""Claims — подача claim'ов, голосование асессоров и выплаты."""

from .assessment import Assessment, AssessmentConfig, Poll, PollStatus
from .claims import PAYOUT_REDEMPTION_PERIOD, Claim, IndividualClaims

__all__ = [
    "Assessment",
    "AssessmentConfig",
    "Poll",
    "PollStatus",
    "Claim",
    "IndividualClaims",
    "PAYOUT_REDEMPTION_PERIOD",
]
