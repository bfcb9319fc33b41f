import streamlit as st

from app.logger import get_logger
from app.preorder_flow import (
    PreorderState,
    PreorderValidationError,
    TOKEN_MISSING,
    build_preorder,
    category_label,
    check_access_token,
    format_price,
    group_menu_by_category,
    selection_total,
    state_for_token,
    verify_booking_email,
)
from app.supabase_tools import DataAccessError, fetch_access_token, fetch_menu_items, preorder_link, submit_preorder
from db.database import get_supabase_client

logger = get_logger(__name__)


def _render_email_gate(booking, state: PreorderState):
    st.header(f"Hi, {booking.first_name}!")
    st.write(
        "To optimise the service for a group like yours, we use this pre-order system. "
        "By confirming your order in advance, we facilitate preparation in the kitchen, "
        "reduce waiting time and ensure **that everything goes perfectly on the day of your visit.**"
    )
    st.caption("Thank you for your understanding and cooperation.")

    with st.form("verify-email"):
        st.write("To access your booking details, please enter the email address used to make the reservation.")
        email = st.text_input("Booking Email", placeholder="your@email.com")
        submitted = st.form_submit_button("Verify Email")

    if submitted:
        if verify_booking_email(email, booking.customer_email):
            state.email_verified = True
            st.rerun()
        else:
            st.error("The email does not match the booking email. Please check and try again.")


def _render_mode_choice(state: PreorderState, share_link: str):
    st.subheader("How would you like to place your pre-order?")
    st.caption("Choose the option that best fits your situation.")

    c1, c2 = st.columns(2)
    with c1:
        st.write("**Group pre-order**")
        st.write("You decide and confirm the meals for the entire group.")
        if st.button("Click here to Group pre-order", use_container_width=True):
            state.order_mode = "group"
            st.rerun()
    with c2:
        st.write("**Individual order**")
        st.write(
            "Enter and select your own meal, then share the link with the other guests so they can do the same. "
            "If you've received this link, please place your pre-order through this option."
        )
        if st.button("Click here to Individual order", type="primary", use_container_width=True):
            state.order_mode = "individual"
            st.rerun()

    st.write("Pre-order Link to Share")
    st.code(share_link, language=None)


def _render_booking_details(booking):
    st.subheader("Your Booking Details")
    c1, c2 = st.columns(2)
    c1.write(f"**Booking Reference**  \n{booking.booking_reference}")
    c2.write(f"**Customer Name**  \n{booking.customer_name}")
    c1.write(f"**Email**  \n{booking.customer_email}")
    c2.write(f"**Booking Date**  \n{booking.booking_date}")
    c1.write(f"**Booking Time**  \n{booking.booking_time}")
    c2.write(f"**Number of People**  \n{booking.number_of_people}")


def _render_menu(menu_items, state: PreorderState):
    st.subheader("Menu")
    for category, items in group_menu_by_category(menu_items).items():
        with st.expander(category_label(category)):
            for item in items:
                info, minus, qty, plus, add = st.columns([6, 1, 1, 1, 2])
                info.write(f"**{item['name']}**")
                if item.get("description"):
                    info.caption(item["description"])
                if item.get("price"):
                    info.write(format_price(item["price"]))
                minus.button("−", key=f"stage-minus-{item['id']}", on_click=state.stage, args=(item["id"], -1))
                qty.write(str(state.staged.get(item["id"], 0)))
                plus.button("+", key=f"stage-plus-{item['id']}", on_click=state.stage, args=(item["id"], 1))
                add.button("Add", key=f"add-{item['id']}", on_click=state.add_staged, args=(item["id"],))


def _render_summary(menu_items, state: PreorderState):
    menu_by_id = {item["id"]: item for item in menu_items}
    st.subheader("Summary of your selection")

    selected = state.selected_items()
    if not selected:
        st.write("Your order is empty")
        return

    for item_id, qty in selected:
        item = menu_by_id.get(item_id, {})
        name, minus, count, plus, remove = st.columns([6, 1, 1, 1, 1])
        line_total = format_price(item["price"] * qty) if item.get("price") else ""
        name.write(f"{item.get('name', 'Unknown item')} {line_total}")
        minus.button("−", key=f"qty-minus-{item_id}", on_click=state.decrement, args=(item_id,))
        count.write(str(qty))
        plus.button("+", key=f"qty-plus-{item_id}", on_click=state.increment, args=(item_id,))
        remove.button("X", key=f"qty-remove-{item_id}", on_click=state.remove, args=(item_id,))

    st.write(f"**Total: {format_price(selection_total(state.quantities, menu_by_id))}**")


def _submit(supabase, booking, state: PreorderState):
    try:
        preorder, items = build_preorder(state, booking)
    except PreorderValidationError as e:
        st.warning(str(e))
        return

    result = submit_preorder(supabase, preorder, items)
    if not result["success"]:
        st.error(result["error"])
        return

    state.mark_submitted()
    st.rerun()


def render_thank_you(state: PreorderState):
    st.title("✅ Thank you!")
    st.write("Your pre-order has been submitted successfully. We look forward to seeing you.")
    st.caption("Ordering for someone else in your group? You can place another order with the same link.")
    st.button("Place another order", on_click=state.start_another_order)


def render_preorder_page(cfg, token: str):
    if not token:
        st.error(TOKEN_MISSING)
        return

    supabase = get_supabase_client()

    try:
        with st.spinner("Loading..."):
            row = fetch_access_token(supabase, token)
    except DataAccessError as e:
        st.error(str(e))
        return

    check = check_access_token(row)
    if not check.ok:
        logger.info(f"Pre-order access denied: {check.reason}")
        st.error(check.reason)
        return

    booking = check.booking
    state = state_for_token(st.session_state, token)

    if state.submitted:
        render_thank_you(state)
        return

    if not state.email_verified:
        _render_email_gate(booking, state)
        return

    if state.order_mode is None:
        _render_mode_choice(state, preorder_link(cfg.email.site_url, token))
        return

    if st.button("← Back to order type selection"):
        state.order_mode = None
        st.rerun()

    _render_booking_details(booking)

    if state.order_mode == "individual":
        state.attendee_name = st.text_input("Your Name", value=state.attendee_name, placeholder="Enter your name")

    try:
        menu_items = fetch_menu_items(supabase)
    except DataAccessError as e:
        st.error(str(e))
        return

    menu_col, summary_col = st.columns([3, 2])
    with menu_col:
        _render_menu(menu_items, state)
    with summary_col:
        _render_summary(menu_items, state)
        state.customer_notes = st.text_area("Notes for the kitchen (allergies, etc.)", value=state.customer_notes)
        if st.button("Submit Pre-Order", type="primary", use_container_width=True):
            _submit(supabase, booking, state)
