# backoffice/models.py

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from backoffice.db import Base


# ---------------------------------------------------------------------------
# Marketplace
# ---------------------------------------------------------------------------

class ShopConnection(Base):
    """One Etsy shop linked to one local user."""
    __tablename__ = "etsy_connections"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    shop_id = Column(String, nullable=False, index=True)
    shop_name = Column(String, nullable=False)

    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=True)

    # soft delete; tokens are kept for audit
    is_active = Column(Boolean, nullable=False, default=True)
    last_sync_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "shop_id", name="uq_etsy_connections_user_shop"),
    )


class Platform(Base):
    __tablename__ = "platforms"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, unique=True, index=True)  # etsy | woocommerce
    api_endpoint = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class Fragrance(Base):
    """Sellable scent/SKU. Created from marketplace listings when missing."""
    __tablename__ = "fragrances"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sku = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    price = Column(Float, nullable=True)
    cost = Column(Float, nullable=True)
    current_stock = Column(Integer, nullable=False, default=0)
    low_stock_threshold = Column(Integer, nullable=False, default=10)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    listings = relationship("Listing", back_populates="fragrance")

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_fragrances_stock_non_negative"),
    )


class Listing(Base):
    """Marketplace publication of a Fragrance. Upserted by external_id on every sync."""
    __tablename__ = "listings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    fragrance_id = Column(Uuid(as_uuid=True), ForeignKey("fragrances.id"), nullable=False, index=True)
    platform_id = Column(Uuid(as_uuid=True), ForeignKey("platforms.id"), nullable=False, index=True)

    external_id = Column(String, nullable=True, unique=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False, default="draft")  # active | inactive | draft | sold
    url = Column(String, nullable=True)

    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    # set by the writer only when content changes
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    fragrance = relationship("Fragrance", back_populates="listings")


class SyncLog(Base):
    __tablename__ = "sync_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    platform_id = Column(Uuid(as_uuid=True), ForeignKey("platforms.id"), nullable=False, index=True)
    operation = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")  # pending | syncing | success | error
    message = Column(Text, nullable=True)
    details = Column(Text, nullable=True)

    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)


class ListingOptimization(Base):
    __tablename__ = "listing_optimizations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    listing_id = Column(Uuid(as_uuid=True), ForeignKey("listings.id"), nullable=True, index=True)

    original_data = Column(Text, nullable=False)
    analysis_results = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="analyzing")  # analyzing | completed | error

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


# ---------------------------------------------------------------------------
# Production
# ---------------------------------------------------------------------------

class ProductCategory(Base):
    __tablename__ = "product_categories"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(String, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class Product(Base):
    __tablename__ = "products"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    category_id = Column(Uuid(as_uuid=True), ForeignKey("product_categories.id"), nullable=False, index=True)
    name = Column(String, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    category = relationship("ProductCategory")
    supplies = relationship("ProductSupply", back_populates="product")


class Supply(Base):
    __tablename__ = "supplies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(String, nullable=False)
    unit = Column(String, nullable=False)

    price = Column(Float, nullable=True)
    vendor = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("price IS NULL OR price >= 0", name="ck_supplies_price_non_negative"),
    )


class ProductSupply(Base):
    """Bill-of-materials line: quantity of a supply needed per single unit of product."""
    __tablename__ = "product_supplies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    supply_id = Column(Uuid(as_uuid=True), ForeignKey("supplies.id"), nullable=False, index=True)
    quantity = Column(Float, nullable=False)
    unit = Column(String, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    product = relationship("Product", back_populates="supplies")
    supply = relationship("Supply")

    __table_args__ = (
        UniqueConstraint("product_id", "supply_id", name="uq_product_supplies_product_supply"),
        CheckConstraint("quantity > 0", name="ck_product_supplies_quantity_positive"),
    )


class ProductionBatch(Base):
    __tablename__ = "production_batches"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    batch_size = Column(Integer, nullable=False)

    # frozen json snapshot of the calculated supply lines
    calculated_supplies = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="planned")  # planned | in_progress | completed

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("batch_size > 0", name="ck_production_batches_size_positive"),
    )


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------

class Plan(Base):
    __tablename__ = "plans"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    fields_data = Column(Text, nullable=True)
    ai_generated_plan = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="draft")

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    tasks = relationship("PlanTask", back_populates="plan", order_by="PlanTask.order_index")


class PlanTask(Base):
    __tablename__ = "plan_tasks"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("plans.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    plan = relationship("Plan", back_populates="tasks")


class TodoTask(Base):
    __tablename__ = "todo_tasks"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
