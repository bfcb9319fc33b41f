import streamlit as st
import pandas as pd

from app.supabase_tools import DataAccessError, fetch_settings, update_min_large_table_size
from db.database import get_supabase_client


def render_settings_page():
    st.title("⚙️ Settings")
    st.caption("Configure system settings for the pre-order system.")

    supabase = get_supabase_client()

    try:
        settings = fetch_settings(supabase)
    except DataAccessError as e:
        st.error(str(e))
        return

    if not settings:
        st.warning("No pre-order settings row found. Create one in the preorders_settings table.")
        return

    st.subheader("Pre-Order Configuration")
    size = st.number_input(
        "Minimum People for Large Tables",
        min_value=1,
        step=1,
        value=int(settings.get("min_large_table_size") or 1),
        help="Bookings with this number of people or more will receive pre-order email invitations.",
    )

    if settings.get("updated_at"):
        updated = pd.to_datetime(settings["updated_at"], utc=True)
        st.caption(f"Last updated: {updated:%Y-%m-%d %H:%M} UTC")

    if st.button("💾 Save Settings"):
        result = update_min_large_table_size(supabase, settings["id"], int(size))
        if result["success"]:
            st.success("Settings saved successfully")
            st.rerun()
        else:
            st.error(result["error"])

    st.subheader("Current Configuration")
    st.metric("Minimum Large Table Size", f"{int(size)}+ people")
    st.write(f"Bookings with {int(size)} or more people will receive pre-order invitations via email.")
