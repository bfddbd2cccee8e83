"""
Typed audit event payloads.

Every core write goes through one of these frozen dataclasses instead of a
free-form dict. Each kind fixes its action name and entity, and shapes its
before/after snapshots. ``AuditPayload`` is the union accepted by
``AuditService.record``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser

# ===============================================================================
# ACTORS
# ===============================================================================


@dataclass(frozen=True)
class AuditActor:
    """Explicit principal attributed to an audit row."""

    actor_id: str = ""
    actor_type: str = "system"
    ip_address: str | None = None

    @classmethod
    def system(cls, source: str = "") -> AuditActor:
        return cls(actor_id=source, actor_type="system")

    @classmethod
    def provider(cls, ip_address: str | None = None) -> AuditActor:
        return cls(actor_id="paytr", actor_type="provider", ip_address=ip_address)

    @classmethod
    def for_user(
        cls, user: AbstractBaseUser, ip_address: str | None = None, *, actor_type: str = "user"
    ) -> AuditActor:
        return cls(actor_id=str(user.pk), actor_type=actor_type, ip_address=ip_address)

    @classmethod
    def customer(cls, email: str) -> AuditActor:
        return cls(actor_id=email, actor_type="user")


# ===============================================================================
# BASE PAYLOAD
# ===============================================================================


@dataclass(frozen=True)
class BaseAuditPayload:
    action: ClassVar[str] = ""
    entity: ClassVar[str] = ""

    def get_action(self) -> str:
        return self.action

    def get_entity_id(self) -> str:
        return ""

    def before(self) -> dict[str, Any] | None:
        return None

    def after(self) -> dict[str, Any] | None:
        return asdict(self)


# ===============================================================================
# PAYMENT CALLBACK EVENTS
# ===============================================================================


@dataclass(frozen=True)
class CallbackReceived(BaseAuditPayload):
    action: ClassVar[str] = "paytr:callback_received"
    entity: ClassVar[str] = "paytr"

    merchant_oid: str
    status: str
    total_amount: str

    def get_entity_id(self) -> str:
        return self.merchant_oid


@dataclass(frozen=True)
class CallbackBadHash(BaseAuditPayload):
    action: ClassVar[str] = "paytr:callback_bad_hash"
    entity: ClassVar[str] = "paytr"

    merchant_oid: str
    status: str
    total_amount: str

    def get_entity_id(self) -> str:
        return self.merchant_oid


@dataclass(frozen=True)
class CallbackOrderNotFound(BaseAuditPayload):
    action: ClassVar[str] = "paytr:callback_order_not_found"
    entity: ClassVar[str] = "paytr"

    merchant_oid: str

    def get_entity_id(self) -> str:
        return self.merchant_oid


@dataclass(frozen=True)
class PaymentFailed(BaseAuditPayload):
    action: ClassVar[str] = "order:payment_failed"
    entity: ClassVar[str] = "order"

    order_id: int
    reason_code: str
    reason_message: str
    restocked_items: int

    def get_entity_id(self) -> str:
        return str(self.order_id)


# ===============================================================================
# PURCHASE EVENTS
# ===============================================================================


@dataclass(frozen=True)
class PurchaseOrder(BaseAuditPayload):
    action: ClassVar[str] = "event:purchase_order"
    entity: ClassVar[str] = "order"

    order_id: int
    order_no: str
    total_amount: int
    item_count: int

    def get_entity_id(self) -> str:
        return str(self.order_id)


@dataclass(frozen=True)
class PurchaseItem(BaseAuditPayload):
    action: ClassVar[str] = "event:purchase_item"
    entity: ClassVar[str] = "product"

    order_id: int
    product_id: int | None
    quantity: int
    total_price: int

    def get_entity_id(self) -> str:
        return str(self.product_id) if self.product_id is not None else ""


@dataclass(frozen=True)
class VariantPurchase(BaseAuditPayload):
    entity: ClassVar[str] = "order"

    experiment: str
    variant: str
    order_id: int
    total_amount: int

    def get_action(self) -> str:
        return f"ab:{self.experiment}:{self.variant}:purchase"

    def get_entity_id(self) -> str:
        return str(self.order_id)


# ===============================================================================
# ORDER OPERATIONS
# ===============================================================================


@dataclass(frozen=True)
class StaleOrderReleased(BaseAuditPayload):
    action: ClassVar[str] = "ops:release_stale_order"
    entity: ClassVar[str] = "order"

    order_id: int
    threshold_minutes: int
    item_count: int
    source: str

    def get_entity_id(self) -> str:
        return str(self.order_id)

    def before(self) -> dict[str, Any] | None:
        return {"status": "PENDING", "payment_status": "PENDING"}

    def after(self) -> dict[str, Any] | None:
        return {
            "status": "CANCELLED",
            "payment_status": "FAILED",
            "threshold_minutes": self.threshold_minutes,
            "item_count": self.item_count,
            "source": self.source,
        }


@dataclass(frozen=True)
class OrderStatusUpdated(BaseAuditPayload):
    action: ClassVar[str] = "order_status_update"
    entity: ClassVar[str] = "order"

    order_id: int
    old_status: str
    old_payment_status: str
    new_status: str
    new_payment_status: str

    def get_entity_id(self) -> str:
        return str(self.order_id)

    def before(self) -> dict[str, Any] | None:
        return {"status": self.old_status, "payment_status": self.old_payment_status}

    def after(self) -> dict[str, Any] | None:
        return {"status": self.new_status, "payment_status": self.new_payment_status}


@dataclass(frozen=True)
class OrderShippingUpdated(BaseAuditPayload):
    action: ClassVar[str] = "order_shipping_update"
    entity: ClassVar[str] = "order"

    order_id: int
    old_status: str
    new_status: str
    carrier: str
    tracking_no: str
    old_carrier: str = ""
    old_tracking_no: str = ""

    def get_entity_id(self) -> str:
        return str(self.order_id)

    def before(self) -> dict[str, Any] | None:
        return {"status": self.old_status, "carrier": self.old_carrier, "tracking_no": self.old_tracking_no}

    def after(self) -> dict[str, Any] | None:
        return {"status": self.new_status, "carrier": self.carrier, "tracking_no": self.tracking_no}


# ===============================================================================
# LOYALTY EVENTS
# ===============================================================================


@dataclass(frozen=True)
class LoyaltyEarned(BaseAuditPayload):
    action: ClassVar[str] = "loyalty:earn_purchase"
    entity: ClassVar[str] = "user"

    user_id: int
    order_id: int
    points: int
    tier: str

    def get_entity_id(self) -> str:
        return str(self.user_id)


@dataclass(frozen=True)
class LoyaltyRedeemed(BaseAuditPayload):
    action: ClassVar[str] = "loyalty:redeem"
    entity: ClassVar[str] = "user"

    user_id: int
    points: int
    coupon_code: str
    coupon_value: int

    def get_entity_id(self) -> str:
        return str(self.user_id)


@dataclass(frozen=True)
class LoyaltyAdjusted(BaseAuditPayload):
    action: ClassVar[str] = "loyalty:manual_adjust"
    entity: ClassVar[str] = "user"

    user_id: int
    delta: int
    reason_code: str
    note: str
    balance_before: int
    balance_after: int

    def get_entity_id(self) -> str:
        return str(self.user_id)

    def before(self) -> dict[str, Any] | None:
        return {"points_balance": self.balance_before}

    def after(self) -> dict[str, Any] | None:
        return {
            "points_balance": self.balance_after,
            "delta": self.delta,
            "reason_code": self.reason_code,
            "note": self.note,
        }


# ===============================================================================
# COUPON ADMINISTRATION
# ===============================================================================


@dataclass(frozen=True)
class CouponCreated(BaseAuditPayload):
    action: ClassVar[str] = "coupon_create"
    entity: ClassVar[str] = "coupon"

    coupon_id: int
    snapshot: dict[str, Any] = field(default_factory=dict)

    def get_entity_id(self) -> str:
        return str(self.coupon_id)

    def after(self) -> dict[str, Any] | None:
        return dict(self.snapshot)


@dataclass(frozen=True)
class CouponUpdated(BaseAuditPayload):
    action: ClassVar[str] = "coupon_update"
    entity: ClassVar[str] = "coupon"

    coupon_id: int
    old_snapshot: dict[str, Any] = field(default_factory=dict)
    new_snapshot: dict[str, Any] = field(default_factory=dict)

    def get_entity_id(self) -> str:
        return str(self.coupon_id)

    def before(self) -> dict[str, Any] | None:
        return dict(self.old_snapshot)

    def after(self) -> dict[str, Any] | None:
        return dict(self.new_snapshot)


@dataclass(frozen=True)
class CouponDisabled(BaseAuditPayload):
    action: ClassVar[str] = "coupon_delete"
    entity: ClassVar[str] = "coupon"

    coupon_id: int
    code: str

    def get_entity_id(self) -> str:
        return str(self.coupon_id)

    def after(self) -> dict[str, Any] | None:
        return {"code": self.code, "mode": "soft_disable"}


AuditPayload = (
    CallbackReceived
    | CallbackBadHash
    | CallbackOrderNotFound
    | PaymentFailed
    | PurchaseOrder
    | PurchaseItem
    | VariantPurchase
    | StaleOrderReleased
    | OrderStatusUpdated
    | OrderShippingUpdated
    | LoyaltyEarned
    | LoyaltyRedeemed
    | LoyaltyAdjusted
    | CouponCreated
    | CouponUpdated
    | CouponDisabled
)
