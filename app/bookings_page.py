import streamlit as st
import pandas as pd

from app.booking_ranges import (
    filter_bookings_by_range,
    format_long_date,
    format_short_date,
    quick_days,
    range_title,
    static_ranges,
    today_in,
)
from app.supabase_tools import DataAccessError, fetch_booking_token, fetch_bookings, preorder_link
from db.database import get_supabase_client


def _selected_range(today):
    if "bookings_range" not in st.session_state:
        st.session_state.bookings_range = static_ranges(today)["This Week"]
    return st.session_state.bookings_range


def _set_range(start, end):
    st.session_state.bookings_range = (start, end)


def _render_range_picker(today):
    start, end = _selected_range(today)

    with st.popover(
        f"📅 {format_short_date(start)} - {format_short_date(end)}" if start and start != end
        else (f"📅 {format_long_date(start)}" if start else "📅 Pick a date or range")
    ):
        cols = st.columns(7)
        for col, (label, day) in zip(cols, quick_days(today)):
            col.button(label, key=f"quick-{label}", on_click=_set_range, args=(day, day))
        cols[6].button("Clear", key="quick-clear", on_click=_set_range, args=(None, None))

        presets = static_ranges(today)
        preset_cols = st.columns(4)
        for i, (label, (p_start, p_end)) in enumerate(presets.items()):
            preset_cols[i % 4].button(label, key=f"preset-{label}", on_click=_set_range, args=(p_start, p_end))

        picked = st.date_input(
            "Custom range",
            value=(start, end) if start else (),
            format="YYYY-MM-DD",
        )
        if isinstance(picked, tuple) and len(picked) == 2 and picked != (start, end):
            _set_range(picked[0], picked[1])
            st.rerun()


def render_bookings_page(cfg):
    today = today_in(cfg.preorder.timezone)
    start, end = _selected_range(today)

    title = range_title(start, end, today)
    st.title(title)
    if start and title.startswith("Bookings of "):
        st.caption(
            f"({format_long_date(start)} to {format_long_date(end)})" if end and end != start
            else f"({format_long_date(start)})"
        )

    _render_range_picker(today)

    supabase = get_supabase_client()

    try:
        bookings = fetch_bookings(supabase)
    except DataAccessError as e:
        st.error(str(e))
        return

    bookings = filter_bookings_by_range(bookings, start, end)
    if not bookings:
        st.info("No bookings found for this date.")
        return

    df = pd.DataFrame(bookings)
    display_cols = {
        "booking_reference": "Ref",
        "customer_name": "Customer",
        "customer_email": "Email",
        "customer_mobile": "Mobile",
        "booking_date": "Booking Date",
        "booking_time": "Booking Time",
        "table_numbers": "Table numbers",
        "number_of_people": "# of People",
        "channel": "Channel",
    }
    st.dataframe(df[list(display_cols)].rename(columns=display_cols), use_container_width=True, hide_index=True)

    # --- Actions: Pre-order link ---
    c1, c2 = st.columns([2, 1])

    with c1:
        st.write("### Pre-order link")
        options = {f"{b['booking_reference']} - {b['customer_name']}": b["id"] for b in bookings}
        choice = st.selectbox("Booking", list(options))
        if st.button("Get share link"):
            try:
                token = fetch_booking_token(supabase, options[choice])
            except DataAccessError as e:
                st.error(str(e))
                token = None
            else:
                if not token:
                    st.error("Token not found. Make sure the booking exists and tokens are generated.")
            if token:
                st.code(preorder_link(cfg.email.site_url, token), language=None)

    # --- Actions: Export ---
    with c2:
        st.write("### Export")
        csv = df.to_csv(index=False).encode("utf-8")
        st.download_button(
            "📥 Download as CSV",
            csv,
            "bookings.csv",
            "text/csv",
            key="download-bookings-csv",
        )
