# db/database.py

from supabase import create_client, Client
import streamlit as st


def get_supabase_client() -> Client:
    """
    Returns the Supabase client for the current Streamlit session.
    The anon key is used so row level security applies to the signed-in
    staff member; the auth session lives on this client.
    """

    if "supabase_client" not in st.session_state:
        url = st.secrets["supabase"]["url"]
        key = st.secrets["supabase"].get("anon_key") or st.secrets["supabase"]["service_key"]
        st.session_state.supabase_client = create_client(url, key)

    return st.session_state.supabase_client


def create_service_client(url: str, service_key: str) -> Client:
    """Client for server-side jobs (the email function) that bypass RLS."""
    return create_client(url, service_key)
