"""SQLAlchemy ORM models for the LunaDine SQLite schema.

Translatable entities (categories, master items, customization groups and
options) keep their display text in ``*_translations`` tables keyed by
language. Language id 1 is the fallback for every translation lookup.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Language(Base):
    __tablename__ = "languages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(60), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Branch(Base):
    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="open", nullable=False)
    default_language_id: Mapped[int] = mapped_column(
        ForeignKey("languages.id"), default=1, nullable=False
    )
    # Raw JSON blob; parsed into BranchSettings by the catalog repository
    settings: Mapped[str | None] = mapped_column(Text, nullable=True)


class MenuCategory(Base):
    __tablename__ = "menu_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class CategoryTranslation(Base):
    __tablename__ = "menu_category_translations"
    __table_args__ = (UniqueConstraint("category_id", "language_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("menu_categories.id"), nullable=False)
    language_id: Mapped[int] = mapped_column(ForeignKey("languages.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)


class MasterMenuItem(Base):
    __tablename__ = "master_menu_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    image_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # JSON array of strings
    tags: Mapped[str | None] = mapped_column(Text, nullable=True)


class ItemTranslation(Base):
    __tablename__ = "menu_item_translations"
    __table_args__ = (UniqueConstraint("item_id", "language_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("master_menu_items.id"), nullable=False)
    language_id: Mapped[int] = mapped_column(ForeignKey("languages.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class BranchMenuItem(Base):
    __tablename__ = "branch_menu_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True, nullable=False)
    master_item_id: Mapped[int] = mapped_column(ForeignKey("master_menu_items.id"), nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("menu_categories.id"), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class CustomizationGroup(Base):
    __tablename__ = "customization_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    master_item_id: Mapped[int] = mapped_column(
        ForeignKey("master_menu_items.id"), index=True, nullable=False
    )
    selection_type: Mapped[str] = mapped_column(String(20), default="single", nullable=False)


class GroupTranslation(Base):
    __tablename__ = "customization_group_translations"
    __table_args__ = (UniqueConstraint("group_id", "language_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    group_id: Mapped[int] = mapped_column(ForeignKey("customization_groups.id"), nullable=False)
    language_id: Mapped[int] = mapped_column(ForeignKey("languages.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)


class CustomizationOption(Base):
    __tablename__ = "customization_options"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    group_id: Mapped[int] = mapped_column(
        ForeignKey("customization_groups.id"), index=True, nullable=False
    )
    additional_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)


class OptionTranslation(Base):
    __tablename__ = "customization_option_translations"
    __table_args__ = (UniqueConstraint("option_id", "language_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    option_id: Mapped[int] = mapped_column(ForeignKey("customization_options.id"), nullable=False)
    language_id: Mapped[int] = mapped_column(ForeignKey("languages.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)


class RestaurantTable(Base):
    __tablename__ = "restaurant_tables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True, nullable=False)
    table_identifier: Mapped[str] = mapped_column(String(30), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=4, nullable=False)


class PromoCode(Base):
    __tablename__ = "promo_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    min_order_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Shown to guests only; validity is governed by is_active
    expires_at: Mapped[date | None] = mapped_column(Date, nullable=True)


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_uid: Mapped[str] = mapped_column(String(40), unique=True, index=True, nullable=False)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), nullable=False)
    table_id: Mapped[int | None] = mapped_column(ForeignKey("restaurant_tables.id"), nullable=True)
    order_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="placed", nullable=False)
    customer_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    customer_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    language_id: Mapped[int] = mapped_column(ForeignKey("languages.id"), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    promo_code_id: Mapped[int | None] = mapped_column(ForeignKey("promo_codes.id"), nullable=True)
    estimated_completion_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), index=True, nullable=False)
    branch_menu_item_id: Mapped[int] = mapped_column(
        ForeignKey("branch_menu_items.id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    # JSON snapshot of the customizations as submitted at order time
    customizations: Mapped[str] = mapped_column(Text, default="[]", nullable=False)

    order = relationship("Order", back_populates="items")


class Feedback(Base):
    __tablename__ = "feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), index=True, nullable=False)
    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    food_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    service_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    item_feedback: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    table_id: Mapped[int] = mapped_column(ForeignKey("restaurant_tables.id"), nullable=False)
    request_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class ServiceRequestTranslation(Base):
    __tablename__ = "service_request_translations"
    __table_args__ = (UniqueConstraint("request_type", "language_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_type: Mapped[str] = mapped_column(String(20), nullable=False)
    language_id: Mapped[int] = mapped_column(ForeignKey("languages.id"), nullable=False)
    display_text: Mapped[str] = mapped_column(String(120), nullable=False)
