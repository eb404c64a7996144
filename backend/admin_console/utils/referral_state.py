from admin_console.errors import InvalidState
from admin_console.models.enums import ReferralAction, ReferralStatus

# Status each admin action may start from, and the status it leads to
ALLOWED_TRANSITIONS: dict[ReferralAction, tuple[set[ReferralStatus], ReferralStatus]] = {
    ReferralAction.MARK_PAID: (
        {ReferralStatus.PENDING, ReferralStatus.PROCESSING},
        ReferralStatus.PAID,
    ),
    ReferralAction.MARK_INELIGIBLE: (
        {ReferralStatus.PENDING, ReferralStatus.PROCESSING},
        ReferralStatus.INELIGIBLE,
    ),
    # The only backwards move: reopens an ineligible referral for another payout attempt
    ReferralAction.RECALCULATE_AND_RETRY: (
        {ReferralStatus.PENDING, ReferralStatus.PROCESSING, ReferralStatus.INELIGIBLE},
        ReferralStatus.PROCESSING,
    ),
}


def next_referral_status(current: ReferralStatus, action: ReferralAction) -> ReferralStatus:
    """Validate a referral transition. Raises InvalidState if the action is not allowed."""
    sources, target = ALLOWED_TRANSITIONS[action]
    if current not in sources:
        raise InvalidState(
            f"Cannot {action.value.replace('_', ' ')} a referral that is '{current.value}'"
        )
    return target
