from typing import Dict, Any, List, Optional, Tuple

import streamlit as st
import pandas as pd

from app.preorder_flow import category_label, format_price
from app.supabase_tools import (
    DataAccessError,
    create_menu_item,
    delete_menu_item,
    fetch_menu_items,
    update_menu_item,
)
from db.database import get_supabase_client


def validate_menu_form(name: str, description: str, price: str, category: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Returns (payload, None) or (None, error message)."""
    name = (name or "").strip()
    category = (category or "").strip()
    price = (price or "").strip()

    try:
        numeric_price = float(price)
    except ValueError:
        numeric_price = None

    if not name or not price or not category or numeric_price is None:
        return None, "Please fill all required fields with valid data."

    return {
        "name": name,
        "description": (description or "").strip() or None,
        "price": numeric_price,
        "category": category,
    }, None


def menu_item_options(items: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Selector options keyed by id; names are not unique."""
    return {item["id"]: item for item in items}


def menu_item_label(item: Dict[str, Any]) -> str:
    label = f"{category_label(item.get('category') or 'Other')} · {item['name']}"
    if item.get("price") is not None:
        label += f" ({format_price(item['price'])})"
    return label


def _render_item_form(supabase, item=None):
    editing = item is not None
    form_key = f"menu-form-{item['id']}" if editing else "menu-form-new"

    with st.form(form_key, clear_on_submit=not editing):
        name = st.text_input("Name *", value=item["name"] if editing else "")
        description = st.text_area("Description", value=(item.get("description") or "") if editing else "")
        price = st.text_input("Price *", value=str(item["price"]) if editing and item.get("price") is not None else "")
        category = st.text_input("Category *", value=(item.get("category") or "") if editing else "",
                                 help="Starters, Vegetables, Meat or Fish are listed first.")
        submitted = st.form_submit_button("Save changes" if editing else "Add item")

    if not submitted:
        return

    payload, error = validate_menu_form(name, description, price, category)
    if error:
        st.error(error)
        return

    result = update_menu_item(supabase, item["id"], payload) if editing else create_menu_item(supabase, payload)
    if result["success"]:
        st.success("Menu item saved.")
        st.rerun()
    else:
        st.error(result["error"])


def render_menu_page():
    st.title("🍽️ Menu")

    supabase = get_supabase_client()

    try:
        items = fetch_menu_items(supabase)
    except DataAccessError as e:
        st.error(str(e))
        return

    with st.expander("➕ Add menu item"):
        _render_item_form(supabase)

    if not items:
        st.info("No menu items yet.")
        return

    df = pd.DataFrame(items)
    df["category"] = df["category"].fillna("Other").map(category_label)
    df["price"] = df["price"].map(lambda p: format_price(p) if pd.notna(p) else "")
    display_cols = [c for c in ["category", "name", "description", "price"] if c in df.columns]
    st.dataframe(df[display_cols], use_container_width=True, hide_index=True)

    # --- Actions: Edit / Delete ---
    st.write("### Actions")
    options = menu_item_options(items)
    selected = options[
        st.selectbox("Menu item", list(options), format_func=lambda item_id: menu_item_label(options[item_id]))
    ]

    with st.expander(f"✏️ Edit {selected['name']}"):
        _render_item_form(supabase, selected)

    confirm = st.checkbox(f'Yes, delete "{selected["name"]}"', key=f"confirm-delete-{selected['id']}")
    if st.button("🗑️ Delete item", disabled=not confirm):
        result = delete_menu_item(supabase, selected["id"])
        if result["success"]:
            st.success(f"{selected['name']} deleted.")
            st.rerun()
        else:
            st.error(result["error"])
