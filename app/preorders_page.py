import streamlit as st
import pandas as pd

from app.preorder_flow import format_price
from app.supabase_tools import DataAccessError, fetch_preorder_items, fetch_preorders
from db.database import get_supabase_client


def render_preorders_page():
    st.title("📋 Pre-Orders")

    supabase = get_supabase_client()

    try:
        preorders = fetch_preorders(supabase)
    except DataAccessError as e:
        st.error(str(e))
        return

    if not preorders:
        st.info("No pre-orders found.")
        return

    df = pd.DataFrame(preorders)
    df["booking"] = df["booking_date"].fillna("") + " " + df["booking_time"].str[:5]
    df["submitted"] = pd.to_datetime(df["submitted_at"], utc=True, errors="coerce").dt.strftime("%Y-%m-%d %H:%M")
    df["notes"] = df["customer_notes"].fillna("").replace("", "-")

    table = df[["name", "booking", "customer_name", "number_of_people", "submitted", "notes"]].rename(columns={
        "name": "Pre-Order Name",
        "booking": "Booking Date",
        "customer_name": "Customer",
        "number_of_people": "Guests",
        "submitted": "Submitted At",
        "notes": "Notes",
    })
    st.dataframe(table, use_container_width=True, hide_index=True)

    st.download_button(
        "📥 Download as CSV",
        table.to_csv(index=False).encode("utf-8"),
        "pre_orders.csv",
        "text/csv",
        key="download-preorders-csv",
    )

    # --- Item details ---
    st.write("### Items")
    try:
        items_by_preorder = fetch_preorder_items(supabase, [p["id"] for p in preorders])
    except DataAccessError as e:
        st.error(str(e))
        return

    for preorder in preorders:
        lines = items_by_preorder.get(preorder["id"], [])
        with st.expander(f"{preorder['name']} · {preorder['booking_date']} ({len(lines)} items)"):
            if not lines:
                st.write("No items recorded.")
            for line in lines:
                price = format_price(line["price"] * line["quantity"]) if line["price"] is not None else ""
                st.write(f"- {line['quantity']} × {line['name']} {price}")
