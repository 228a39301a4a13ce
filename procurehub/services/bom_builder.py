"""
BOM builder: assembles a bill of materials from catalogue products and
commits it through the REST API.

Totals are always recomputed locally as quantity x unit price (rounded to
cents). The header is created first; items follow one request at a time in
list order. If an item request fails the half-built BOM is deleted again
before the error is reported.
"""
import threading
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, Union

from pydantic import BaseModel

from procurehub.core.config import settings
from procurehub.core.logging import get_logger
from procurehub.schemas.catalog import BomCreate, BomItemCreate
from procurehub.services.api_client import (
    LOGIN_PATH,
    ProcurementClient,
    is_unauthorized_error,
)

logger = get_logger(__name__)

DEFAULT_UOM = "units"
UNCATEGORIZED = "Uncategorized"

MSG_EMPTY_BOM = "Please add at least one item to the BOM"
MSG_CREATED = "BOM created successfully"
MSG_LOGGED_OUT = "You are logged out. Logging in again..."
MSG_FAILED = "Failed to create BOM"

_CENT = Decimal("0.01")
_QTY = Decimal("0.001")


class EmptyBomError(ValueError):
    def __init__(self):
        super().__init__(MSG_EMPTY_BOM)


def _money(value) -> Decimal:
    return Decimal(str(value if value is not None else "0")).quantize(_CENT, rounding=ROUND_HALF_UP)


def _qty(value) -> Decimal:
    return Decimal(str(value)).quantize(_QTY, rounding=ROUND_HALF_UP)


def fold_by_category(lines: Iterable[Tuple[Optional[str], Optional[Decimal]]]) -> Dict[str, Decimal]:
    """Sum ``(category, total)`` pairs; a missing category counts as Uncategorized."""
    breakdown: Dict[str, Decimal] = {}
    for category, total in lines:
        key = category or UNCATEGORIZED
        breakdown[key] = breakdown.get(key, Decimal("0.00")) + (total or Decimal("0.00"))
    return breakdown


def _as_dict(product) -> dict:
    if isinstance(product, BaseModel):
        return product.model_dump()
    return product


@dataclass
class BomLineItem:
    product_id: int
    product_name: str
    quantity: Decimal
    uom: str
    unit_price: Decimal
    total_price: Decimal = Decimal("0.00")

    def __post_init__(self):
        self.recompute()

    def recompute(self):
        self.total_price = _money(self.quantity * self.unit_price)

    def to_payload(self) -> BomItemCreate:
        return BomItemCreate(
            product_id=self.product_id,
            quantity=self.quantity,
            uom=self.uom,
            unit_price=self.unit_price,
            total_price=self.total_price,
        )


class Notifier(Protocol):
    """Where the builder reports outcomes (a toast in a UI, a log line in a script)."""

    def notify(self, title: str, message: str, destructive: bool = False) -> None:
        ...

    def redirect(self, url: str) -> None:
        ...


class LoggingNotifier:
    def notify(self, title: str, message: str, destructive: bool = False) -> None:
        if destructive:
            logger.warning(f"{title}: {message}")
        else:
            logger.info(f"{title}: {message}")

    def redirect(self, url: str) -> None:
        logger.info(f"Redirecting to {url}")


class BomBuilder:
    """Ordered list of BOM lines, one per product."""

    def __init__(self, catalogue: Optional[Iterable] = None):
        self.items: List[BomLineItem] = []
        self.catalogue: Dict[int, dict] = {}
        if catalogue is not None:
            self.load_catalogue(catalogue)

    def load_catalogue(self, products: Iterable):
        self.catalogue = {p["id"]: p for p in (_as_dict(p) for p in products)}

    def __len__(self):
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    # ============= EDITING =============

    def add_product(self, product, quantity=1) -> BomLineItem:
        """Add a product, or bump the quantity of its existing line."""
        product = _as_dict(product)
        for item in self.items:
            if item.product_id == product["id"]:
                item.quantity = _qty(item.quantity + _qty(quantity))
                item.recompute()
                return item

        item = BomLineItem(
            product_id=product["id"],
            product_name=product.get("item_name") or "",
            quantity=_qty(quantity),
            uom=product.get("uom") or DEFAULT_UOM,
            unit_price=_money(product.get("base_price")),
        )
        self.items.append(item)
        self.catalogue.setdefault(product["id"], product)
        return item

    def update_item_quantity(self, index: int, quantity) -> BomLineItem:
        item = self.items[index]
        item.quantity = _qty(quantity)
        item.recompute()
        return item

    def update_item_price(self, index: int, unit_price) -> BomLineItem:
        item = self.items[index]
        item.unit_price = _money(unit_price)
        item.recompute()
        return item

    def remove_item(self, index: int) -> BomLineItem:
        return self.items.pop(index)

    def clear(self):
        self.items = []

    # ============= TOTALS =============

    @property
    def total_value(self) -> Decimal:
        return sum((i.total_price for i in self.items), Decimal("0.00"))

    @property
    def total_quantity(self) -> Decimal:
        return sum((i.quantity for i in self.items), Decimal("0"))

    def category_breakdown(self, catalogue: Optional[Dict[int, dict]] = None) -> Dict[str, Decimal]:
        """Sum line totals per product category."""
        catalogue = self.catalogue if catalogue is None else catalogue
        return fold_by_category(
            ((catalogue.get(item.product_id) or {}).get("category"), item.total_price)
            for item in self.items
        )

    # ============= COMMIT =============

    def validate(self, header: Union[BomCreate, dict]) -> Tuple[BomCreate, List[BomItemCreate]]:
        """Check header and lines locally; raises before any request is made."""
        if self.is_empty:
            raise EmptyBomError()
        if not isinstance(header, BomCreate):
            header = BomCreate.model_validate(header)
        return header, self.item_payloads()

    def item_payloads(self) -> List[BomItemCreate]:
        return [item.to_payload() for item in self.items]

    def commit(self, client: ProcurementClient, header: Union[BomCreate, dict]) -> dict:
        """Create the header, then each item in order.

        Returns the created BOM header. On an item failure the header is
        deleted (cascading to the items already stored) and the item error
        is re-raised.
        """
        header, payloads = self.validate(header)
        bom = client.create_bom(header)
        bom_id = bom["id"]

        created = 0
        try:
            for payload in payloads:
                client.add_bom_item(bom_id, payload)
                created += 1
        except Exception:
            logger.warning(
                f"BOM {bom_id}: item {created + 1} of {len(self.items)} failed, removing partial BOM"
            )
            try:
                client.delete_bom(bom_id)
            except Exception as cleanup_error:
                logger.error(f"BOM {bom_id}: cleanup failed: {cleanup_error}")
            raise

        logger.info(f"BOM {bom_id} created with {created} items")
        return bom

    def commit_atomic(self, client: ProcurementClient, header: Union[BomCreate, dict]) -> dict:
        """Header and items in a single transactional request."""
        header, payloads = self.validate(header)
        bom = client.create_bom_with_items(header, payloads)
        logger.info(f"BOM {bom['id']} created with {len(self.items)} items")
        return bom

    def submit(
        self,
        client: ProcurementClient,
        header: Union[BomCreate, dict],
        notifier: Optional[Notifier] = None,
        atomic: bool = False,
        redirect_delay_ms: Optional[int] = None,
    ) -> Optional[dict]:
        """Commit and report the outcome through ``notifier``.

        Returns the created BOM, or None when nothing was created. The builder
        is cleared only on success.
        """
        notifier = notifier or LoggingNotifier()

        if self.is_empty:
            notifier.notify("Error", MSG_EMPTY_BOM, destructive=True)
            return None

        try:
            if atomic:
                bom = self.commit_atomic(client, header)
            else:
                bom = self.commit(client, header)
        except Exception as e:
            if is_unauthorized_error(e):
                notifier.notify("Unauthorized", MSG_LOGGED_OUT, destructive=True)
                schedule_redirect(
                    notifier,
                    getattr(e, "login_url", LOGIN_PATH),
                    redirect_delay_ms,
                )
            else:
                logger.error(f"BOM submit failed: {e}")
                notifier.notify("Error", MSG_FAILED, destructive=True)
            return None

        notifier.notify("Success", MSG_CREATED)
        self.clear()
        return bom


def schedule_redirect(
    notifier: Notifier,
    url: str = LOGIN_PATH,
    delay_ms: Optional[int] = None,
) -> threading.Timer:
    """Send the user to the login page after a short delay."""
    if delay_ms is None:
        delay_ms = settings.UNAUTHORIZED_REDIRECT_DELAY_MS
    timer = threading.Timer(delay_ms / 1000.0, notifier.redirect, args=(url,))
    timer.daemon = True
    timer.start()
    return timer
