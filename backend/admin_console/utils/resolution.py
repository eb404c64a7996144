from admin_console.errors import MissingFields, SplitOutOfRange
from admin_console.models.enums import ResolutionAction

MIN_BUYER_PERCENTAGE = 0
MAX_BUYER_PERCENTAGE = 70
DEFAULT_BUYER_PERCENTAGE = 50

# Shown above the resolution form of every unresolved dispute
RESOLUTION_NOTICE = (
    "Job In-Progress Dispute: 30% payment to seller is non-refundable. "
    "70% can be refunded or held based on resolution."
)

# Dropdown labels, matched exactly
RESOLUTION_OPTIONS: tuple[tuple[str, ResolutionAction], ...] = (
    ("Refund Buyer (70% only)", ResolutionAction.REFUND_BUYER),
    ("Pay Seller (Release 70%)", ResolutionAction.PAY_SELLER),
    ("Split Payment Between Buyer & Seller", ResolutionAction.SPLIT_PAYMENT),
    ("Seller Rework", ResolutionAction.REQUEST_REWORK),
)

_ACTION_BY_LABEL: dict[str, ResolutionAction] = dict(RESOLUTION_OPTIONS)


def select_resolution_action(label: str | None) -> ResolutionAction | None:
    """Map a dropdown label to its action. Unknown labels select nothing."""
    if label is None:
        return None
    return _ACTION_BY_LABEL.get(label)


def seller_share(buyer_percentage: int) -> int:
    """The seller always gets the remainder; it is never validated on its own."""
    return 100 - buyer_percentage


def validate_resolution(
    action: ResolutionAction | None,
    buyer_percentage: int | float | None,
    comment: str | None,
) -> None:
    """Raise MissingFields or SplitOutOfRange; return None when the input can be sent."""
    if action is None or not (comment or "").strip():
        raise MissingFields()
    if action == ResolutionAction.SPLIT_PAYMENT:
        if buyer_percentage is None or not (
            MIN_BUYER_PERCENTAGE <= buyer_percentage <= MAX_BUYER_PERCENTAGE
        ):
            raise SplitOutOfRange(
                f"Buyer percentage must be between {MIN_BUYER_PERCENTAGE} and {MAX_BUYER_PERCENTAGE}"
            )
