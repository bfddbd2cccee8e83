# ===============================================================================
# CORE TEST FACTORIES FOR THE STOREFRONT PLATFORM
# ===============================================================================
"""
Test factories for the models shared across the test suite.

Money values are kuruş (minor units) throughout.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from django.contrib.auth import get_user_model
from django.utils import timezone
from django.utils.text import slugify

from apps.cart.models import Cart, CartItem
from apps.orders.models import Order, OrderItem, OrderStatus, PaymentStatus
from apps.products.models import Product
from apps.promotions.models import Coupon, CouponType

User = get_user_model()

_sequence = {"value": 0}


def _next() -> int:
    _sequence["value"] += 1
    return _sequence["value"]


# ===============================================================================
# USER FACTORIES
# ===============================================================================


def create_user(email: str = "shopper@example.com", **extra: Any) -> Any:
    existing = User.objects.filter(email=email).first()
    if existing is not None:
        return existing
    username = extra.pop("username", f"{email.split('@')[0]}-{_next()}")
    return User.objects.create_user(username=username, email=email, password="SecureTestPass123!", **extra)


def create_admin_user(email: str = "operator@example.com") -> Any:
    return create_user(email=email, is_staff=True)


# ===============================================================================
# CATALOG & CART FACTORIES
# ===============================================================================


def create_product(
    name: str = "Ceramic Mug", price: int = 25000, quantity: int = 10, quantity_control: bool = True
) -> Product:
    return Product.objects.create(
        name=name,
        slug=f"{slugify(name)}-{_next()}",
        price=price,
        quantity=quantity,
        quantity_control=quantity_control,
    )


def create_cart(token: str = "cart-token-1", products: list[tuple[Product, int]] | None = None) -> Cart:
    cart = Cart.objects.create(token=token)
    for product, quantity in products or []:
        CartItem.objects.create(cart=cart, product=product, quantity=quantity)
    return cart


# ===============================================================================
# ORDER FACTORIES
# ===============================================================================


@dataclass
class OrderCreationRequest:
    """Parameter object for building an order directly, bypassing checkout."""

    items: list[tuple[Product | None, int]] = field(default_factory=list)
    customer_email: str = "shopper@example.com"
    user: Any = None
    status: str = OrderStatus.PENDING
    payment_status: str = PaymentStatus.PENDING
    cart_token: str | None = None
    age_minutes: int = 0


def create_order(request: OrderCreationRequest | None = None) -> Order:
    """Create an order with line items; ``age_minutes`` back-dates ``created_at``."""
    request = request or OrderCreationRequest()
    number = _next()
    order_no = str(10_000_000_000 + number)
    order = Order.objects.create(
        order_no=order_no,
        paytr_merchant_oid=f"SF{order_no}",
        status=request.status,
        payment_status=request.payment_status,
        user=request.user,
        customer_email=request.customer_email,
        customer_name="Test Shopper",
        cart_token=request.cart_token,
    )

    subtotal = 0
    for product, quantity in request.items:
        unit_price = product.price if product is not None else 10000
        OrderItem.objects.create(
            order=order,
            product=product,
            product_name=product.name if product is not None else "Removed product",
            quantity=quantity,
            unit_price=unit_price,
            total_price=unit_price * quantity,
        )
        subtotal += unit_price * quantity

    Order.objects.filter(pk=order.pk).update(
        subtotal_amount=subtotal,
        total_amount=subtotal,
        created_at=timezone.now() - timedelta(minutes=request.age_minutes),
    )
    order.refresh_from_db()
    return order


# ===============================================================================
# COUPON FACTORIES
# ===============================================================================


def create_coupon(code: str = "SAVE10", type: str = CouponType.PERCENT, value: int = 10, **extra: Any) -> Coupon:  # noqa: A002
    return Coupon.objects.create(code=code, type=type, value=value, **extra)
