import locale
import logging
from datetime import date

import streamlit as st

from api_client import ApiError, CommissionApiClient
from app_config import load_config, setup_logging
from commission_grid import (
    ALL_CATEGORIES,
    ASCENDING,
    Debouncer,
    GridState,
    ValidationError,
    apply_bulk_commission,
    can_apply_bulk,
    category_options,
    flush_commissions,
    format_price,
    has_next_page,
    has_previous_page,
    is_page_fully_selected,
    load_products,
    reseed_commission_fields,
    toggle_select_all,
    toggle_selection,
    toggle_sort,
    visible_page,
)
from commission_simulation import range_bounds, simulation_frame, staff_options

config = load_config()
logger = setup_logging(config.log_level)

try:
    locale.setlocale(locale.LC_COLLATE, "")
except locale.Error:
    logger.warning("System locale unavailable, falling back to default string collation")

GRID_COLUMNS = [0.6, 3, 2, 1.5, 2]
SORT_HEADERS = [("name", "Product Name"), ("category", "Category"), ("price", "Price")]


# -----------------------------
# Fonctions utiles
# -----------------------------
def notify(level: str, message: str):
    st.session_state.notices.append((level, message))


def show_notices():
    for level, message in st.session_state.notices:
        if level == "success":
            st.success(message, icon="✅")
        elif level == "warning":
            st.warning(message, icon="⚠️")
        else:
            st.error(message, icon="🚨")
    st.session_state.notices = []


def report_api_error(action: str, error: Exception):
    logger.error("Error %s: %s", action, error, exc_info=error)
    notify("error", f"Error {action}. Please try again.")


def initialize_session_state():
    if "grid" not in st.session_state:
        st.session_state.grid = GridState(page_size=config.page_size)
    if "client" not in st.session_state:
        st.session_state.client = CommissionApiClient(config)
    if "debouncer" not in st.session_state:
        st.session_state.debouncer = Debouncer(config.debounce_seconds)
    if "commission_seeds" not in st.session_state:
        st.session_state.commission_seeds = {}
    if "notices" not in st.session_state:
        st.session_state.notices = []
    if "simulation" not in st.session_state:
        st.session_state.simulation = None

    # chargement initial, une seule fois par session
    if "products_loaded" not in st.session_state:
        st.session_state.products_loaded = True
        try:
            load_products(st.session_state.grid, st.session_state.client)
        except ApiError as e:
            report_api_error("fetching products", e)
    if "staff_members" not in st.session_state:
        st.session_state.staff_members = []
        try:
            st.session_state.staff_members = st.session_state.client.list_staff_members()
        except ApiError as e:
            report_api_error("fetching staff members", e)


# -----------------------------
# Callbacks de la grille
# -----------------------------
def on_commission_edit(product_id: str):
    st.session_state.debouncer.push(product_id, st.session_state[f"commission_{product_id}"])


def on_page_change(step: int):
    st.session_state.grid.current_page += step


def on_apply_bulk():
    grid = st.session_state.grid
    grid.bulk_percent = st.session_state.get("bulk_percent", "")
    try:
        apply_bulk_commission(grid, st.session_state.client)
    except ValidationError as e:
        notify("warning", str(e))
    except ApiError as e:
        report_api_error("updating commission", e)
    else:
        notify("success", "Commission updated successfully")


def flush_pending_commissions() -> bool:
    """Commit edits whose quiet period is over. True when something changed on screen."""
    failed = []
    saved = flush_commissions(
        st.session_state.grid,
        st.session_state.client,
        st.session_state.debouncer,
        on_error=lambda product_id, e: failed.append((product_id, e)),
    )
    for product_id, e in failed:
        if isinstance(e, ValidationError):
            notify("warning", str(e))
        else:
            report_api_error(f"updating commission for product {product_id}", e)
    if saved:
        notify("success", "Commission updated successfully")
    return bool(saved or failed)


@st.fragment(run_every=config.debounce_seconds)
def pending_commissions_watcher():
    if st.session_state.debouncer.has_pending() and flush_pending_commissions():
        st.rerun()


def sync_row_widgets(page_rows):
    grid = st.session_state.grid
    seeds = st.session_state.commission_seeds
    for product in page_rows:
        # widget state is dropped by Streamlit once a row leaves the page
        if f"commission_{product.id}" not in st.session_state:
            seeds.pop(product.id, None)
    for product_id, value in reseed_commission_fields(seeds, page_rows):
        st.session_state[f"commission_{product_id}"] = value
    for product in page_rows:
        st.session_state[f"select_{product.id}"] = product.id in grid.selected


# -----------------------------
# Grille des produits
# -----------------------------
def display_filters(grid: GridState):
    col1, col2 = st.columns(2)
    with col1:
        grid.search = st.text_input("Search Products", key="search", placeholder="Search by product name")
    with col2:
        options = category_options(grid.products)
        if st.session_state.get("category_filter") not in options:
            st.session_state.category_filter = ALL_CATEGORIES
        grid.category = st.selectbox("Filter by Category", options, key="category_filter")


def display_product_rows(grid: GridState, page_rows):
    header = st.columns(GRID_COLUMNS)
    for col, (column, label) in zip(header[1:4], SORT_HEADERS):
        if grid.sort_column == column:
            label += " ▲" if grid.sort_direction == ASCENDING else " ▼"
        col.button(label, key=f"sort_{column}", on_click=toggle_sort, args=(grid, column))
    header[4].markdown("**Commission Percent**")

    if not page_rows:
        st.info("No products to display", icon="📦")
        return

    for product in page_rows:
        cols = st.columns(GRID_COLUMNS)
        cols[0].checkbox(
            "Select product",
            key=f"select_{product.id}",
            label_visibility="collapsed",
            on_change=toggle_selection,
            args=(grid, product.id),
        )
        cols[1].write(product.name)
        cols[2].write(product.category)
        cols[3].write(format_price(product.price))
        cols[4].text_input(
            "Commission Percent",
            key=f"commission_{product.id}",
            placeholder="%",
            label_visibility="collapsed",
            on_change=on_commission_edit,
            args=(product.id,),
        )


def display_grid_controls(grid: GridState, page_rows, pages: int):
    left, right = st.columns(2)
    with left:
        col1, col2 = st.columns(2)
        grid.bulk_percent = col1.text_input(
            "Commission percent for selected products",
            key="bulk_percent",
            placeholder="%",
            disabled=not grid.selected,
            label_visibility="collapsed",
        )
        col2.button("Apply to selected products", key="apply_bulk", disabled=not can_apply_bulk(grid), on_click=on_apply_bulk)
    with right:
        col1, col2, col3, col4 = st.columns(4)
        col1.button(
            "Deselect All" if is_page_fully_selected(grid, page_rows) else "Select All",
            key="select_all",
            on_click=toggle_select_all,
            args=(grid, page_rows),
        )
        col2.button("Previous", key="previous_page", disabled=not has_previous_page(grid), on_click=on_page_change, args=(-1,))
        col3.write(f"Page {grid.current_page} of {pages}")
        col4.button("Next", key="next_page", disabled=not has_next_page(grid, pages), on_click=on_page_change, args=(1,))


def display_commission_grid():
    st.header("📦 Commission Plan")
    grid = st.session_state.grid

    flush_pending_commissions()
    display_filters(grid)

    page_rows, pages = visible_page(grid)
    sync_row_widgets(page_rows)
    show_notices()
    display_product_rows(grid, page_rows)
    display_grid_controls(grid, page_rows, pages)
    pending_commissions_watcher()


# -----------------------------
# Simulation des commissions
# -----------------------------
def display_commission_simulation():
    st.header("📊 Commission Simulation")
    staff = staff_options(st.session_state.staff_members)

    today = date.today()
    selection = st.date_input("Date range", value=(today, today), key="simulation_range")
    start, end = range_bounds(selection)
    staff_member_id = st.selectbox(
        "Staff Member",
        list(staff),
        key="staff_member",
        index=None,
        format_func=lambda member_id: staff[member_id],
        disabled=not staff,
        placeholder="Choose a staff member",
    )

    if st.button("Simulate", key="simulate", disabled=staff_member_id is None):
        try:
            result = st.session_state.client.simulate_commissions(start, end, staff_member_id)
            st.session_state.simulation = {"start": start, "frame": simulation_frame(start, result)}
        except (ApiError, ValueError) as e:
            logger.error("Error simulating commissions: %s", e, exc_info=e)
            st.error("Error simulating commissions. Please try again.", icon="🚨")

    if st.session_state.simulation is not None:
        st.dataframe(st.session_state.simulation["frame"], width="stretch", hide_index=True)


# -----------------------------
# Main
# -----------------------------
st.set_page_config(page_title="Commission Plan Simulator", layout="wide")
st.title("💰 Commission Plan Simulator")
initialize_session_state()

# Grille éditable des produits
display_commission_grid()

# Simulation sur une période
display_commission_simulation()
