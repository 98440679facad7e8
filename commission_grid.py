import locale
import logging
import math
import time
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"
ASCENDING = "ascending"
DESCENDING = "descending"
SORTABLE_COLUMNS = ("name", "category", "price")

MIN_SELECTION_FOR_BULK = 2
MSG_SELECT_TWO = "Select at least two products to apply commission."
MSG_PERCENT_REQUIRED = "You must add a percent."
MSG_PERCENT_RANGE = "Commission percent must be a whole number between 0 and 100."


class ValidationError(ValueError):
    """Client-side precondition not met; nothing was sent"""


def _coerce_commission(value) -> Optional[int]:
    """Whole percent in [0, 100] or None; anything else from the API is dropped."""
    if value is None:
        return None
    if isinstance(value, bool):
        percent = None
    elif isinstance(value, int):
        percent = value
    elif isinstance(value, float) and value.is_integer():
        percent = int(value)
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        percent = int(value.strip())
    else:
        percent = None
    if percent is None or not 0 <= percent <= 100:
        logger.warning("Ignoring invalid commission percent from API: %r", value)
        return None
    return percent


@dataclass
class Product:
    id: str
    name: str
    category: str
    price: float
    commission_percent: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Product":
        return cls(
            id=str(data.get("_id", data.get("id"))),
            name=data.get("name", ""),
            category=data.get("category", ""),
            price=data.get("price"),
            commission_percent=_coerce_commission(data.get("commissionPercent")),
        )


@dataclass
class GridState:
    products: List[Product] = field(default_factory=list)
    # dict keys keep selection order for the bulk request
    selected: Dict[str, None] = field(default_factory=dict)
    search: str = ""
    category: str = ALL_CATEGORIES
    sort_column: Optional[str] = None
    sort_direction: str = ASCENDING
    current_page: int = 1
    page_size: int = 10
    bulk_percent: str = ""


# -----------------------------
# Filtre / tri / pagination
# -----------------------------
def filter_products(products: List[Product], search: str, category: str) -> List[Product]:
    needle = search.lower()
    return [
        p for p in products
        if (category == ALL_CATEGORIES or p.category == category) and needle in p.name.lower()
    ]


def category_options(products: List[Product]) -> List[str]:
    categories = list(dict.fromkeys(p.category for p in products))
    return [ALL_CATEGORIES] + categories


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def compare_values(a, b) -> int:
    if isinstance(a, str) and isinstance(b, str):
        return locale.strcoll(a, b)
    if _is_number(a) and _is_number(b):
        diff = a - b
        return (diff > 0) - (diff < 0)
    # mismatched or missing values keep their relative order
    return 0


def sort_products(products: List[Product], column: Optional[str], direction: str) -> List[Product]:
    if not column:
        return list(products)
    sign = 1 if direction == ASCENDING else -1

    def _cmp(a: Product, b: Product) -> int:
        return sign * compare_values(getattr(a, column, None), getattr(b, column, None))

    return sorted(products, key=cmp_to_key(_cmp))


def toggle_sort(state: GridState, column: str) -> None:
    """Select the sort column and flip the direction, even when the column changes."""
    state.sort_column = column
    state.sort_direction = DESCENDING if state.sort_direction == ASCENDING else ASCENDING


def paginate(items: List, page: int, page_size: int) -> List:
    start = (page - 1) * page_size
    return items[start:start + page_size]


def total_pages(count: int, page_size: int) -> int:
    return math.ceil(count / page_size)


def has_previous_page(state: GridState) -> bool:
    return state.current_page > 1


def has_next_page(state: GridState, pages: int) -> bool:
    return state.current_page < pages


def sorted_view(state: GridState) -> List[Product]:
    filtered = filter_products(state.products, state.search, state.category)
    return sort_products(filtered, state.sort_column, state.sort_direction)


def visible_page(state: GridState) -> Tuple[List[Product], int]:
    """Rows of the current page and the page count, recomputed from scratch."""
    rows = sorted_view(state)
    return paginate(rows, state.current_page, state.page_size), total_pages(len(rows), state.page_size)


# -----------------------------
# Sélection
# -----------------------------
def toggle_selection(state: GridState, product_id: str) -> None:
    if product_id in state.selected:
        del state.selected[product_id]
    else:
        state.selected[product_id] = None


def is_page_fully_selected(state: GridState, page_rows: List[Product]) -> bool:
    # size comparison only, scoped to the current page
    return len(state.selected) == len(page_rows)


def toggle_select_all(state: GridState, page_rows: List[Product]) -> None:
    if is_page_fully_selected(state, page_rows):
        state.selected = {}
    else:
        state.selected = dict.fromkeys(p.id for p in page_rows)


def prune_selection(state: GridState) -> None:
    known = {p.id for p in state.products}
    state.selected = {pid: None for pid in state.selected if pid in known}


# -----------------------------
# Commissions
# -----------------------------
def parse_commission_percent(text: str) -> int:
    value = str(text).strip()
    if value == "":
        raise ValidationError(MSG_PERCENT_REQUIRED)
    try:
        percent = int(value)
    except ValueError:
        raise ValidationError(MSG_PERCENT_RANGE) from None
    if not 0 <= percent <= 100:
        raise ValidationError(MSG_PERCENT_RANGE)
    return percent


def commission_field_value(product: Product) -> str:
    return "" if product.commission_percent is None else str(product.commission_percent)


def format_price(price) -> str:
    if isinstance(price, float) and price.is_integer():
        price = int(price)
    return f"${price}"


def can_apply_bulk(state: GridState) -> bool:
    return len(state.selected) >= MIN_SELECTION_FOR_BULK and state.bulk_percent != ""


def replace_products(state: GridState, products: List[Product]) -> None:
    state.products = list(products)
    prune_selection(state)


def load_products(state: GridState, client) -> None:
    replace_products(state, client.list_products())
    logger.info("Loaded %d products", len(state.products))


def patch_commission(state: GridState, product_id: str, percent: int) -> None:
    for product in state.products:
        if product.id == product_id:
            product.commission_percent = percent


def commit_commission(state: GridState, client, product_id: str, value: str) -> bool:
    """Send one product's commission. Returns False when there was nothing to send."""
    if str(value).strip() == "":
        return False
    percent = parse_commission_percent(value)
    client.update_commission(product_id, percent)
    patch_commission(state, product_id, percent)
    logger.info("Commission of product %s set to %d%%", product_id, percent)
    return True


def apply_bulk_commission(state: GridState, client) -> int:
    if len(state.selected) < MIN_SELECTION_FOR_BULK:
        raise ValidationError(MSG_SELECT_TWO)
    if state.bulk_percent == "":
        raise ValidationError(MSG_PERCENT_REQUIRED)
    percent = parse_commission_percent(state.bulk_percent)

    product_ids = list(state.selected)
    updated = client.update_commission_bulk(product_ids, percent)
    state.products = list(updated)
    state.selected = {}
    logger.info("Commission of %d products set to %d%%", len(product_ids), percent)
    return percent


# -----------------------------
# Debounce
# -----------------------------
class Debouncer:
    """Collapse repeated pushes on one key into a single value, released after `wait` seconds of quiet."""

    def __init__(self, wait: float, clock: Callable[[], float] = time.monotonic):
        self.wait = wait
        self._clock = clock
        self._pending: Dict[Hashable, Tuple[Any, float]] = {}

    def push(self, key: Hashable, value: Any) -> None:
        self._pending[key] = (value, self._clock() + self.wait)

    def cancel(self, key: Hashable) -> None:
        self._pending.pop(key, None)

    def has_pending(self) -> bool:
        return bool(self._pending)

    def next_deadline(self) -> Optional[float]:
        if not self._pending:
            return None
        return min(deadline for _, deadline in self._pending.values())

    def pop_due(self) -> List[Tuple[Hashable, Any]]:
        now = self._clock()
        due = [(key, value) for key, (value, deadline) in self._pending.items() if deadline <= now]
        for key, _ in due:
            del self._pending[key]
        return due


def flush_commissions(state: GridState, client, debouncer: Debouncer,
                      on_error: Optional[Callable[[str, Exception], None]] = None) -> List[str]:
    """Commit every due edit against the current state. Returns the ids that were saved."""
    saved = []
    for product_id, value in debouncer.pop_due():
        try:
            if commit_commission(state, client, product_id, value):
                saved.append(product_id)
        except Exception as e:
            logger.exception("Error updating commission for product %s", product_id)
            if on_error is None:
                raise
            on_error(product_id, e)
    return saved


def reseed_commission_fields(seeds: Dict[str, str], products: Sequence[Product]) -> List[Tuple[str, str]]:
    """Field values to reset because the product's commission changed since the field was seeded."""
    changed = []
    for product in products:
        current = commission_field_value(product)
        if seeds.get(product.id) != current:
            seeds[product.id] = current
            changed.append((product.id, current))
    return changed
