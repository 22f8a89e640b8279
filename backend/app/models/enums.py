from enum import Enum

# Stored as plain strings; services validate against these before writing.


class UserRoleEnum(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ADMIN_ROLES = {UserRoleEnum.ADMIN.value, UserRoleEnum.SUPER_ADMIN.value}


class CommissionStatusEnum(str, Enum):
    PENDING = "pending"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    REJECTED = "rejected"


class CommissionTypeEnum(str, Enum):
    AFFILIATE_LINK = "affiliate_link"
    REFERRAL_CODE = "referral_code"


class WithdrawalStatusEnum(str, Enum):
    NOT_REQUESTED = "not_requested"
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class OrderWithdrawalStatusEnum(str, Enum):
    NOT_REQUESTED = "not_requested"
    PROCESSING = "processing"


class AffiliateStatusEnum(str, Enum):
    NOT_AFFILIATE = "not_affiliate"
    PENDING = "pending"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    INACTIVE = "inactive"


# Affiliates in these states may generate links and request withdrawals.
AFFILIATE_ENABLED_STATUSES = {AffiliateStatusEnum.APPROVED.value, AffiliateStatusEnum.ACTIVE.value}


class PaymentStatusEnum(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class ShipmentStatusEnum(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class EmailStatusEnum(str, Enum):
    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"


def enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]
