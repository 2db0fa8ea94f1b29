import enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint, Uuid
from uuid6 import uuid7
from sqlmodel import Column, SQLModel, Field, Relationship, String
from backend.common.utils import now

# money columns come back as float , NUMERIC(12,2) in the database
Money = Numeric(12, 2, asdecimal=False)


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class OrderStatus(str, enum.Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PAYMENT_FAILED = "payment_failed"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class TransactionStatus(str, enum.Enum):
    SUCCESS = "success"
    REFUNDED = "refunded"
    FAILED = "failed"


class CancellationStep(str, enum.Enum):
    """Last completed step of the cancellation saga."""
    STARTED = "started"
    REFUND_ISSUED = "refund_issued"
    SHIPMENT_CANCELLED = "shipment_cancelled"
    COMPLETED = "completed"


class FulfillmentStep(str, enum.Enum):
    """Last completed step of the shipping label saga."""
    SHIPMENT_CREATED = "shipment_created"
    AWB_ASSIGNED = "awb_assigned"
    COMPLETED = "completed"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Users(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(
        default_factory=uuid7,
        sa_column=Column(Uuid(as_uuid=True), unique=True, index=True, nullable=False)
    )
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True, index=True))
    password_hash: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    name: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))
    phone: Optional[str] = Field(default=None, sa_column=Column(String(20), nullable=True))
    role: str = Field(default=UserRole.USER.value, sa_column=Column(String(32), nullable=False, default=UserRole.USER.value))
    provider: str = Field(default="email", sa_column=Column(String(32), nullable=False, default="email"))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
    deleted_at: Optional[datetime] = Field(default=None,
        sa_column=Column(DateTime(timezone=True)))


class Address(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False))
    type: str = Field(default="shipping", sa_column=Column(String(32), nullable=False, default="shipping"))
    is_default: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    name: str = Field(sa_column=Column(String(128), nullable=False))
    phone: str = Field(sa_column=Column(String(20), nullable=False))
    address_line1: str = Field(sa_column=Column(String(500), nullable=False))
    address_line2: Optional[str] = Field(default=None, sa_column=Column(String(500), nullable=True))
    city: str = Field(sa_column=Column(String(100), nullable=False))
    state: str = Field(sa_column=Column(String(100), nullable=False))
    postal_code: str = Field(sa_column=Column(String(10), nullable=False))
    country: str = Field(default="India", sa_column=Column(String(100), nullable=False, default="India"))
    landmark: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))


class Category(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(128), nullable=False, unique=True))
    slug: str = Field(sa_column=Column(String(100), nullable=False, unique=True, index=True))
    description: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    image: Optional[str] = Field(default=None, sa_column=Column(String(1024), nullable=True))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))

    products: List["Product"] = Relationship(back_populates="category")


class CatalogueProduct(SQLModel, table=True):
    catalogue_id: Optional[int] = Field(default=None, sa_column=Column(Integer, ForeignKey("catalogue.id", ondelete="CASCADE"), primary_key=True))
    product_id: Optional[int] = Field(default=None, sa_column=Column(Integer, ForeignKey("product.id", ondelete="CASCADE"), primary_key=True))


class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False, index=True))
    description: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    price: float = Field(default=0, sa_column=Column(Money, nullable=False, default=0))
    image: Optional[str] = Field(default=None, sa_column=Column(String(1024), nullable=True))
    category_id: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("category.id", ondelete="SET NULL"), index=True, nullable=True))
    colors: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False, default=list))
    sizes: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False, default=list))
    stock: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    is_featured: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
    deleted_at: Optional[datetime] = Field(default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True))

    category: Optional["Category"] = Relationship(back_populates="products")
    catalogues: List["Catalogue"] = Relationship(back_populates="products", link_model=CatalogueProduct)


class Catalogue(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    image: Optional[str] = Field(default=None, sa_column=Column(String(1024), nullable=True))
    status: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    sort_order: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))

    products: List["Product"] = Relationship(back_populates="catalogues", link_model=CatalogueProduct)


class Orders(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True))
    status: str = Field(default=OrderStatus.PENDING_PAYMENT.value,
        sa_column=Column(String(32), nullable=False, index=True, default=OrderStatus.PENDING_PAYMENT.value))
    payment_status: str = Field(default=PaymentStatus.PENDING.value,
        sa_column=Column(String(32), nullable=False, index=True, default=PaymentStatus.PENDING.value))
    payment_method: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))

    total_amount: float = Field(sa_column=Column(Money, nullable=False))
    discount_amount: float = Field(default=0, sa_column=Column(Money, nullable=False, default=0))
    shipping_cost: float = Field(default=0, sa_column=Column(Money, nullable=False, default=0))
    tax_amount: float = Field(default=0, sa_column=Column(Money, nullable=False, default=0))
    currency: str = Field(default="INR", sa_column=Column(String(3), nullable=False, default="INR"))
    coupon_code: Optional[str] = Field(default=None, sa_column=Column(String(50), nullable=True))
    notes: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))

    # address snapshot , never linked to an Address row
    shipping_name: str = Field(sa_column=Column(String(128), nullable=False))
    shipping_email: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    shipping_phone: str = Field(sa_column=Column(String(20), nullable=False))
    shipping_address: str = Field(sa_column=Column(String(500), nullable=False))
    shipping_city: str = Field(sa_column=Column(String(100), nullable=False))
    shipping_state: str = Field(sa_column=Column(String(100), nullable=False))
    shipping_country: str = Field(sa_column=Column(String(100), nullable=False))
    shipping_zip: str = Field(sa_column=Column(String(10), nullable=False))

    shipping_provider: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))
    carrier_order_id: Optional[int] = Field(default=None, sa_column=Column(Integer, nullable=True))
    shipment_id: Optional[int] = Field(default=None, sa_column=Column(Integer, nullable=True))
    tracking_number: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True, index=True))
    shipping_label_url: Optional[str] = Field(default=None, sa_column=Column(String(1024), nullable=True))
    estimated_delivery: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    shipped_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    delivered_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))

    razorpay_order_id: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True, index=True))
    razorpay_payment_id: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    razorpay_signature: Optional[str] = Field(default=None, sa_column=Column(String(256), nullable=True))

    cancellation_step: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))
    fulfillment_step: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))

    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, index=True))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))

    items: List["OrderItem"] = Relationship(back_populates="order")


class OrderItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(sa_column=Column(ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False))
    product_id: int = Field(sa_column=Column(ForeignKey("product.id"), index=True, nullable=False))
    quantity: int = Field(sa_column=Column(Integer, nullable=False))
    price: float = Field(sa_column=Column(Money, nullable=False))
    color: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    size: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))

    order: "Orders" = Relationship(back_populates="items")
    product: "Product" = Relationship()


class PaymentTransaction(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(sa_column=Column(ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False))
    provider: str = Field(sa_column=Column(String(32), nullable=False))
    amount: float = Field(sa_column=Column(Money, nullable=False))
    currency: str = Field(default="INR", sa_column=Column(String(3), nullable=False, default="INR"))
    status: str = Field(sa_column=Column(String(32), nullable=False))
    transaction_id: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True, index=True))
    order_id_ext: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    signature: Optional[str] = Field(default=None, sa_column=Column(String(256), nullable=True))
    failure_reason: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    extra_data: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column("metadata", JSON, nullable=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))


class Coupon(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(sa_column=Column(String(50), nullable=False, unique=True, index=True))
    description: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    discount_type: str = Field(sa_column=Column(String(16), nullable=False))
    discount_value: float = Field(sa_column=Column(Money, nullable=False))
    min_order_amount: float = Field(default=0, sa_column=Column(Money, nullable=False, default=0))
    max_discount_amount: float = Field(default=0, sa_column=Column(Money, nullable=False, default=0))
    valid_from: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    valid_until: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    usage_limit: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    used_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))


class Review(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(sa_column=Column(ForeignKey("product.id", ondelete="CASCADE"), index=True, nullable=False))
    user_id: int = Field(sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False))
    rating: int = Field(sa_column=Column(Integer, nullable=False))
    title: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    comment: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    is_verified: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    is_approved: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    helpful_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))

    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_review_user_id_product_id"),)


class Wishlist(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False))
    product_id: int = Field(sa_column=Column(ForeignKey("product.id", ondelete="CASCADE"), nullable=False))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))

    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_id_product_id"),)


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=True))
    type: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    channel: str = Field(default="in_app", sa_column=Column(String(32), nullable=False, default="in_app"))
    title: str = Field(sa_column=Column(String(255), nullable=False))
    message: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    data: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    status: str = Field(default="pending", sa_column=Column(String(32), nullable=False, default="pending"))
    sent_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    read_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    failure_reason: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))


class NotificationPreference(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False))
    order_created: bool = Field(default=True)
    order_shipped: bool = Field(default=True)
    order_delivered: bool = Field(default=True)
    order_status: bool = Field(default=True)
    low_stock: bool = Field(default=True)
    product_updates: bool = Field(default=False)
    newsletter: bool = Field(default=True)
    marketing: bool = Field(default=False)
    email_enabled: bool = Field(default=True)
    sms_enabled: bool = Field(default=False)
    push_enabled: bool = Field(default=True)
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))


class Newsletter(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True, index=True))
    subscribed: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
