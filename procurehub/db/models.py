"""
SQLAlchemy ORM models for ProcureHub.

Status columns are bounded strings constrained to their enum values; lists
(categories, tags, attachments) and semi-structured payloads are JSON.
"""
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Numeric,
    ForeignKey, Enum, JSON, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from datetime import datetime, timezone

from procurehub.db.session import Base


# ============= ENUMS =============

class UserRole(str, enum.Enum):
    BUYER_ADMIN = "buyer_admin"
    BUYER_USER = "buyer_user"
    SOURCING_MANAGER = "sourcing_manager"
    VENDOR = "vendor"


class VendorStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class RfxType(str, enum.Enum):
    RFI = "rfi"
    RFP = "rfp"
    RFQ = "rfq"


class RfxStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ACTIVE = "active"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class InvitationStatus(str, enum.Enum):
    INVITED = "invited"
    VIEWED = "viewed"
    RESPONDED = "responded"
    DECLINED = "declined"


class AuctionStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class POStatus(str, enum.Enum):
    DRAFT = "draft"
    ISSUED = "issued"
    ACKNOWLEDGED = "acknowledged"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    INVOICED = "invoiced"
    PAID = "paid"
    CANCELLED = "cancelled"


class LineItemStatus(str, enum.Enum):
    PENDING = "pending"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


class ApprovalEntityType(str, enum.Enum):
    VENDOR = "vendor"
    RFX = "rfx"
    PO = "po"
    BUDGET = "budget"


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationType(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


# Stored as VARCHAR + CHECK rather than native enum types, so adding a
# status is a constraint change instead of an ALTER TYPE.
def enum_values(enum_cls):
    return [e.value for e in enum_cls]


def string_enum(enum_cls, name: str) -> Enum:
    return Enum(
        *enum_values(enum_cls),
        name=name,
        native_enum=False,
        create_constraint=True,
    )


UserRoleType = string_enum(UserRole, "userrole")
VendorStatusType = string_enum(VendorStatus, "vendorstatus")
RfxTypeType = string_enum(RfxType, "rfxtype")
RfxStatusType = string_enum(RfxStatus, "rfxstatus")
InvitationStatusType = string_enum(InvitationStatus, "invitationstatus")
AuctionStatusType = string_enum(AuctionStatus, "auctionstatus")
POStatusType = string_enum(POStatus, "postatus")
LineItemStatusType = string_enum(LineItemStatus, "lineitemstatus")
ApprovalEntityTypeType = string_enum(ApprovalEntityType, "approvalentitytype")
ApprovalStatusType = string_enum(ApprovalStatus, "approvalstatus")
NotificationTypeType = string_enum(NotificationType, "notificationtype")


# ============= AUTH & ORGANIZATIONS =============

class UserSession(Base):
    """Server-side login sessions referenced by bearer tokens."""
    __tablename__ = "sessions"

    sid = Column(String(64), primary_key=True)
    sess = Column(JSON, nullable=False)
    expire = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('IDX_session_expire', 'expire'),
    )


class Organization(Base):
    """Buying organization."""
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    gst_number = Column(String(50))
    pan_number = Column(String(50))
    address = Column(Text)
    contact_person = Column(String(255))
    contact_email = Column(String(255))
    contact_phone = Column(String(50))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="organization")


class User(Base):
    """User accounts. Password hash is only set for local logins."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True)
    hashed_password = Column(String(255), nullable=True)
    first_name = Column(String(255))
    last_name = Column(String(255))
    profile_image_url = Column(String(1024))
    role = Column(UserRoleType, nullable=False, default=UserRole.BUYER_USER.value)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="users")
    vendor_profile = relationship(
        "Vendor", foreign_keys="Vendor.user_id", back_populates="user", uselist=False
    )
    notifications = relationship("Notification", back_populates="user", passive_deletes=True)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


# ============= AUDIT LOG =============

class AuditLog(Base):
    """Audit trail of every mutating request."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(100), index=True)
    entity_id = Column(Integer)
    details = Column(JSON)
    ip_address = Column(String(50))

    user = relationship("User")


# ============= VENDORS & CATALOGUE =============

class Vendor(Base):
    """Vendor/Supplier master data."""
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String(255), nullable=False)
    contact_person = Column(String(255))
    email = Column(String(255))
    phone = Column(String(50))
    pan_number = Column(String(50))
    gst_number = Column(String(50))
    tan_number = Column(String(50))
    bank_details = Column(JSON)
    address = Column(Text)
    categories = Column(JSON, default=list)
    certifications = Column(JSON, default=list)
    years_of_experience = Column(Integer)
    office_locations = Column(JSON, default=list)
    status = Column(VendorStatusType, default=VendorStatus.PENDING.value, index=True)
    tags = Column(JSON, default=list)
    performance_score = Column(Numeric(3, 2))
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id], back_populates="vendor_profile")
    creator = relationship("User", foreign_keys=[created_by])
    # Vendors with sourcing history cannot be deleted; the FK refuses it
    rfx_invitations = relationship("RfxInvitation", back_populates="vendor", passive_deletes="all")
    rfx_responses = relationship("RfxResponse", back_populates="vendor", passive_deletes="all")
    bids = relationship("Bid", back_populates="vendor", passive_deletes="all")
    purchase_orders = relationship("PurchaseOrder", back_populates="vendor", passive_deletes="all")


class Product(Base):
    """Catalogue item."""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    item_name = Column(String(255), nullable=False)
    internal_code = Column(String(100), index=True)
    external_code = Column(String(100))
    description = Column(Text)
    category = Column(String(255), index=True)
    sub_category = Column(String(255))
    uom = Column(String(50))
    base_price = Column(Numeric(10, 2))
    specifications = Column(JSON)
    tags = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    bom_items = relationship("BomItem", back_populates="product", passive_deletes="all")


# ============= BILL OF MATERIALS =============

class Bom(Base):
    """Named, versioned container of products."""
    __tablename__ = "boms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    version = Column(String(50), default="1.0")
    description = Column(Text)
    category = Column(String(255))
    valid_from = Column(DateTime(timezone=True))
    valid_to = Column(DateTime(timezone=True))
    tags = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "BomItem",
        back_populates="bom",
        cascade="all, delete-orphan",
        order_by="BomItem.id",
    )
    rfx_events = relationship("RfxEvent", back_populates="bom")


class BomItem(Base):
    """Product line within a BOM. total_price is not checked by the store."""
    __tablename__ = "bom_items"

    id = Column(Integer, primary_key=True, index=True)
    bom_id = Column(Integer, ForeignKey("boms.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Numeric(10, 3), nullable=False)
    uom = Column(String(50))
    unit_price = Column(Numeric(10, 2))
    total_price = Column(Numeric(10, 2))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    bom = relationship("Bom", back_populates="items")
    product = relationship("Product", back_populates="bom_items")


# ============= RFX =============

class RfxEvent(Base):
    """RFI / RFP / RFQ sourcing event."""
    __tablename__ = "rfx_events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    reference_no = Column(String(100), unique=True)
    type = Column(RfxTypeType, nullable=False)
    scope = Column(Text)
    criteria = Column(Text)
    due_date = Column(DateTime(timezone=True))
    status = Column(RfxStatusType, default=RfxStatus.DRAFT.value, index=True)
    evaluation_parameters = Column(JSON)
    attachments = Column(JSON, default=list)
    bom_id = Column(Integer, ForeignKey("boms.id"), nullable=True)
    contact_person = Column(String(255))
    budget = Column(Numeric(12, 2))
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    bom = relationship("Bom", back_populates="rfx_events")
    invitations = relationship(
        "RfxInvitation", back_populates="rfx_event", cascade="all, delete-orphan"
    )
    responses = relationship(
        "RfxResponse", back_populates="rfx_event", cascade="all, delete-orphan"
    )
    purchase_orders = relationship("PurchaseOrder", back_populates="rfx_event")


class RfxInvitation(Base):
    """One row per invited vendor per event."""
    __tablename__ = "rfx_invitations"

    rfx_id = Column(Integer, ForeignKey("rfx_events.id", ondelete="CASCADE"), primary_key=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), primary_key=True)
    status = Column(InvitationStatusType, default=InvitationStatus.INVITED.value)
    invited_at = Column(DateTime(timezone=True), server_default=func.now())
    responded_at = Column(DateTime(timezone=True))

    rfx_event = relationship("RfxEvent", back_populates="invitations")
    vendor = relationship("Vendor", back_populates="rfx_invitations")


class RfxResponse(Base):
    """A vendor's submission against an RFx event."""
    __tablename__ = "rfx_responses"

    id = Column(Integer, primary_key=True, index=True)
    rfx_id = Column(Integer, ForeignKey("rfx_events.id", ondelete="CASCADE"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    response = Column(JSON)
    quoted_price = Column(Numeric(12, 2))
    delivery_terms = Column(Text)
    payment_terms = Column(Text)
    lead_time = Column(Integer)  # days
    attachments = Column(JSON, default=list)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())

    rfx_event = relationship("RfxEvent", back_populates="responses")
    vendor = relationship("Vendor", back_populates="rfx_responses")


# ============= AUCTIONS =============

class Auction(Base):
    """Timed reverse auction. Bidding mechanics live outside the store."""
    __tablename__ = "auctions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    items = Column(JSON)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    reserve_price = Column(Numeric(12, 2))
    current_bid = Column(Numeric(12, 2))
    bid_rules = Column(JSON)
    status = Column(AuctionStatusType, default=AuctionStatus.SCHEDULED.value, index=True)
    winner_id = Column(Integer, ForeignKey("vendors.id"), nullable=True)
    winning_bid = Column(Numeric(12, 2))
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    winner = relationship("Vendor", foreign_keys=[winner_id])
    participants = relationship(
        "AuctionParticipant", back_populates="auction", cascade="all, delete-orphan"
    )
    bids = relationship(
        "Bid", back_populates="auction", cascade="all, delete-orphan", order_by="Bid.timestamp"
    )
    purchase_orders = relationship("PurchaseOrder", back_populates="auction")


class AuctionParticipant(Base):
    """Vendor registration for an auction."""
    __tablename__ = "auction_participants"

    auction_id = Column(Integer, ForeignKey("auctions.id", ondelete="CASCADE"), primary_key=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), primary_key=True)
    registered_at = Column(DateTime(timezone=True), server_default=func.now())

    auction = relationship("Auction", back_populates="participants")
    vendor = relationship("Vendor")


class Bid(Base):
    __tablename__ = "bids"

    id = Column(Integer, primary_key=True, index=True)
    auction_id = Column(Integer, ForeignKey("auctions.id", ondelete="CASCADE"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    # Sub-second precision; bids are listed in this order
    timestamp = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), server_default=func.now())
    is_winning = Column(Boolean, default=False)

    auction = relationship("Auction", back_populates="bids")
    vendor = relationship("Vendor", back_populates="bids")


# ============= PURCHASE ORDERS =============

class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, index=True)
    po_number = Column(String(100), unique=True, nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False, index=True)
    rfx_id = Column(Integer, ForeignKey("rfx_events.id"), nullable=True)
    auction_id = Column(Integer, ForeignKey("auctions.id"), nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(POStatusType, default=POStatus.DRAFT.value, index=True)
    terms_and_conditions = Column(Text)
    delivery_schedule = Column(JSON)
    payment_terms = Column(Text)
    attachments = Column(JSON, default=list)
    acknowledged_at = Column(DateTime(timezone=True))
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    vendor = relationship("Vendor", back_populates="purchase_orders")
    rfx_event = relationship("RfxEvent", back_populates="purchase_orders")
    auction = relationship("Auction", back_populates="purchase_orders")
    line_items = relationship(
        "PoLineItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PoLineItem.id",
    )


class PoLineItem(Base):
    __tablename__ = "po_line_items"

    id = Column(Integer, primary_key=True, index=True)
    po_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Numeric(10, 3), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    delivery_date = Column(DateTime(timezone=True))
    status = Column(LineItemStatusType, default=LineItemStatus.PENDING.value)

    purchase_order = relationship("PurchaseOrder", back_populates="line_items")
    product = relationship("Product")


# ============= APPROVALS & NOTIFICATIONS =============

class Approval(Base):
    """Polymorphic approval record keyed by (entity_type, entity_id)."""
    __tablename__ = "approvals"

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(ApprovalEntityTypeType, nullable=False)
    entity_id = Column(Integer, nullable=False)
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(ApprovalStatusType, default=ApprovalStatus.PENDING.value, index=True)
    comments = Column(Text)
    approved_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    approver = relationship("User")

    __table_args__ = (
        Index('ix_approvals_entity', 'entity_type', 'entity_id'),
    )


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text)
    type = Column(NotificationTypeType, default=NotificationType.INFO.value)
    is_read = Column(Boolean, default=False)
    entity_type = Column(String(100))
    entity_id = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="notifications")
