"""
Demo data for local development. Only reachable with DEBUG and SEED_DEMO on.

Idempotent: rows are looked up by a natural key before being created.
"""
from decimal import Decimal

from sqlalchemy.orm import Session

from procurehub.core.logging import get_logger
from procurehub.core.security import get_password_hash
from procurehub.db.models import (
    Organization, User, UserRole, Vendor, VendorStatus, Product, Bom, BomItem,
)

logger = get_logger(__name__)

DEMO_PASSWORD = "demo-password-123"

DEMO_USERS = [
    ("admin@procurehub.example.com", "Demo", "Admin", UserRole.BUYER_ADMIN),
    ("manager@procurehub.example.com", "Sourcing", "Manager", UserRole.SOURCING_MANAGER),
    ("buyer@procurehub.example.com", "Demo", "Buyer", UserRole.BUYER_USER),
]

DEMO_VENDORS = [
    {
        "company_name": "Acme Office Supplies",
        "contact_person": "Priya Nair",
        "email": "sales@acme-office.example.com",
        "categories": ["Furniture", "Stationery"],
        "years_of_experience": 12,
        "status": VendorStatus.APPROVED.value,
        "performance_score": Decimal("4.50"),
    },
    {
        "company_name": "Bytewise Computers",
        "contact_person": "Arjun Mehta",
        "email": "orders@bytewise.example.com",
        "categories": ["IT Hardware"],
        "years_of_experience": 8,
        "status": VendorStatus.PENDING.value,
    },
]

DEMO_PRODUCTS = [
    {"item_name": "Ergonomic Chair", "internal_code": "FUR-001", "category": "Furniture",
     "uom": "pcs", "base_price": Decimal("500.00")},
    {"item_name": "Standing Desk", "internal_code": "FUR-002", "category": "Furniture",
     "uom": "pcs", "base_price": Decimal("1500.00")},
    {"item_name": "27in Monitor", "internal_code": "IT-001", "category": "IT Hardware",
     "uom": "pcs", "base_price": Decimal("320.00")},
    {"item_name": "Cable Kit", "internal_code": "MSC-001", "category": None,
     "uom": None, "base_price": None},
]


def seed_demo_data(db: Session) -> None:
    org = db.query(Organization).filter(Organization.name == "ProcureHub Demo").first()
    if not org:
        org = Organization(name="ProcureHub Demo", contact_email="procurement@procurehub.example.com")
        db.add(org)
        db.flush()
        logger.info(f"Created demo organization {org.id}")

    users = {}
    for email, first_name, last_name, role in DEMO_USERS:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(
                email=email,
                hashed_password=get_password_hash(DEMO_PASSWORD),
                first_name=first_name,
                last_name=last_name,
                role=role.value,
                organization_id=org.id,
                is_active=True,
            )
            db.add(user)
            db.flush()
            logger.info(f"Created demo user {email}")
        users[role] = user

    creator_id = users[UserRole.BUYER_USER].id

    for data in DEMO_VENDORS:
        if not db.query(Vendor).filter(Vendor.company_name == data["company_name"]).first():
            db.add(Vendor(**data, created_by=creator_id))

    products = {}
    for data in DEMO_PRODUCTS:
        product = db.query(Product).filter(Product.internal_code == data["internal_code"]).first()
        if not product:
            product = Product(**data, is_active=True, created_by=creator_id)
            db.add(product)
            db.flush()
        products[data["internal_code"]] = product

    if not db.query(Bom).filter(Bom.name == "Office Workstation Setup").first():
        chair, desk = products["FUR-001"], products["FUR-002"]
        bom = Bom(name="Office Workstation Setup", category="Furniture", created_by=creator_id)
        bom.items = [
            BomItem(product_id=chair.id, quantity=Decimal("2"), uom="pcs",
                    unit_price=chair.base_price, total_price=Decimal("1000.00")),
            BomItem(product_id=desk.id, quantity=Decimal("1"), uom="pcs",
                    unit_price=desk.base_price, total_price=Decimal("1500.00")),
        ]
        db.add(bom)

    db.flush()
    logger.info("Demo data seeded")
