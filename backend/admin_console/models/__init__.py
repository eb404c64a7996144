from admin_console.models.enums import (
    DisputeStatus,
    FirstTransactionStatus,
    OpenedByRole,
    OperationEvent,
    OperationStatus,
    PromotionStatus,
    ReferralAction,
    ReferralStatus,
    ResolutionAction,
    ServiceApprovalStatus,
)

__all__ = [
    "DisputeStatus",
    "FirstTransactionStatus",
    "OpenedByRole",
    "OperationEvent",
    "OperationStatus",
    "PromotionStatus",
    "ReferralAction",
    "ReferralStatus",
    "ResolutionAction",
    "ServiceApprovalStatus",
]
