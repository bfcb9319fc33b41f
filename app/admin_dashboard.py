from typing import Dict, Any, List

import streamlit as st
import pandas as pd
import plotly.express as px

from app.booking_ranges import today_in, format_long_date
from app.supabase_tools import DataAccessError, fetch_bookings_for_date, fetch_preorder_booking_ids
from db.database import get_supabase_client

STATUS_COMPLETED = "Completed"
STATUS_NOT_SENT = "Not Sent"


def annotate_preorder_status(bookings: List[Dict[str, Any]], preorder_booking_ids: set) -> List[Dict[str, Any]]:
    """A booking with at least one pre-order counts as Completed."""
    return [
        {
            **booking,
            "pre_order_status": STATUS_COMPLETED if booking["id"] in preorder_booking_ids else STATUS_NOT_SENT,
        }
        for booking in bookings
    ]


def render_admin_dashboard(cfg):
    st.title("📊 Dashboard")

    today = today_in(cfg.preorder.timezone)
    selected_day = st.date_input("Reservations for", value=today, format="YYYY-MM-DD")

    supabase = get_supabase_client()

    # --- Fetch Data ---
    try:
        bookings = fetch_bookings_for_date(supabase, selected_day)
    except DataAccessError as e:
        st.error(str(e))
        return

    st.subheader(f"Reservations for {format_long_date(selected_day)}")

    if not bookings:
        st.info("No bookings found for this date.")
        return

    preorder_ids = fetch_preorder_booking_ids(supabase, [b["id"] for b in bookings])
    df = pd.DataFrame(annotate_preorder_status(bookings, preorder_ids))

    # --- KPI Metrics ---
    col1, col2, col3 = st.columns(3)
    col1.metric("Bookings", len(df))
    col2.metric("Guests", int(df["number_of_people"].fillna(0).sum()))
    col3.metric("Pre-orders completed", int((df["pre_order_status"] == STATUS_COMPLETED).sum()))

    # --- Main Data Table ---
    df["time"] = df["booking_time"].fillna("").astype(str).str[:5]
    display_cols = ["time", "customer_name", "number_of_people", "pre_order_status"]
    st.dataframe(
        df[display_cols].rename(columns={
            "time": "Time",
            "customer_name": "Customer",
            "number_of_people": "Guests",
            "pre_order_status": "Pre-Order Status",
        }),
        use_container_width=True,
        hide_index=True,
    )

    # --- Pre-order status chart ---
    status_counts = df["pre_order_status"].value_counts().reset_index()
    status_counts.columns = ["status", "bookings"]
    fig = px.pie(
        status_counts,
        names="status",
        values="bookings",
        color="status",
        color_discrete_map={STATUS_COMPLETED: "#16a34a", STATUS_NOT_SENT: "#9ca3af"},
        hole=0.5,
    )
    st.plotly_chart(fig, use_container_width=True)
