from enum import Enum


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELLED = "cancelled"


# Cancelled is terminal; inactive may return to active.
SUBSCRIPTION_TRANSITIONS: dict["SubscriptionStatus", list["SubscriptionStatus"]] = {
    SubscriptionStatus.ACTIVE: [SubscriptionStatus.INACTIVE, SubscriptionStatus.CANCELLED],
    SubscriptionStatus.INACTIVE: [SubscriptionStatus.ACTIVE],
    SubscriptionStatus.CANCELLED: [],
}


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


class DeliveryStatus(str, Enum):
    ORDER_PLACED = "order_placed"
    PREPARING = "preparing"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    DELAYED = "delayed"


class RejectionReason(str, Enum):
    NO_ACTIVE_SUBSCRIPTION = "no_active_subscription"
    QUOTA_EXHAUSTED = "quota_exhausted"
    LIFETIME_CAP_REACHED = "lifetime_cap_reached"
    ALREADY_ORDERED_THIS_CYCLE = "already_ordered_this_cycle"


# Plan length and lifetime cap are separate knobs that happen to agree.
PLAN_LENGTH_MONTHS = 6
LIFETIME_ORDER_CAP = 6
