import enum

# Values mirror the marketplace API wire format exactly; display strings are
# produced by admin_console.utils.dispute_status.


class DisputeStatus(str, enum.Enum):
    NEW = "NEW"
    OPEN = "OPEN"
    UNDER_REVIEW = "UNDER_REVIEW"
    RESOLVED = "RESOLVED"


class OpenedByRole(str, enum.Enum):
    BUYER = "BUYER"
    SELLER = "SELLER"


class ResolutionAction(str, enum.Enum):
    REFUND_BUYER = "REFUND_BUYER"      # 70% non platform-fee share back to the buyer
    PAY_SELLER = "PAY_SELLER"          # releases 65% of the held amount
    SPLIT_PAYMENT = "SPLIT_PAYMENT"    # buyer P%, seller 100 - P%
    REQUEST_REWORK = "REQUEST_REWORK"  # no funds move


class ReferralStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    INELIGIBLE = "INELIGIBLE"


class ReferralAction(str, enum.Enum):
    MARK_PAID = "mark_paid"
    MARK_INELIGIBLE = "mark_ineligible"
    RECALCULATE_AND_RETRY = "recalculate_and_retry"


class FirstTransactionStatus(str, enum.Enum):
    COMPLETED = "Completed"
    PENDING = "Pending"


class PromotionStatus(str, enum.Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    EXPIRED = "Expired"


class ServiceApprovalStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class OperationStatus(str, enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OperationEvent(str, enum.Enum):
    SUBMIT = "submit"
    SUCCEED = "succeed"
    FAIL = "fail"
    RESET = "reset"
