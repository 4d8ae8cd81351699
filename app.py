from __future__ import annotations

from datetime import date
from typing import List

import streamlit as st
from dotenv import load_dotenv

from arrival_dispatch.config import list_settings_profiles, load_dispatch_settings
from arrival_dispatch.errors import DispatchError, PreconditionError, ValidationError
from arrival_dispatch.inventory import promote_arrival
from arrival_dispatch.notifications import clear_events, read_events
from arrival_dispatch.registry import CatalogKind
from arrival_dispatch.schema import (
    ALL,
    DESTINATIONS,
    ArrivalStatus,
    DocumentType,
    TitleStatus,
    TitleType,
    VehicleStatus,
)
from arrival_dispatch.session import get_session
from arrival_dispatch.views import pending_deliveries, pending_pickups, summarize
from arrival_dispatch.workflow import estimated_ready_date, is_overdue, pickup_alert, timeline_steps

load_dotenv()

st.set_page_config(
    page_title="Arrival Dispatch",
    page_icon="/",
    layout="wide",
)

st.markdown(
    """
<style>
:root {
  --bg: #0b0f14;
  --panel: #141a22;
  --accent: #00e2a1;
  --accent-2: #4cc3ff;
  --danger: #f43f5e;
  --text: #eef2f7;
  --muted: #9aa3b2;
  --border: #1f2633;
}
html, body, [class*="stApp"] {
  background: radial-gradient(900px circle at 10% -10%, #1f2937, #0b0f14 55%);
  color: var(--text);
}
header, [data-testid="stHeader"] {
  visibility: hidden;
  height: 0;
}
.brand {
  font-size: 1.6rem;
  font-weight: 700;
  letter-spacing: -0.02em;
}
.muted { color: var(--muted); }
.badge {
  display: inline-block;
  padding: 0.2rem 0.6rem;
  border-radius: 999px;
  background: rgba(0, 226, 161, 0.14);
  color: var(--accent);
  font-size: 0.75rem;
  font-weight: 600;
}
.badge.overdue {
  background: rgba(244, 63, 94, 0.18);
  color: var(--danger);
}
</style>
""",
    unsafe_allow_html=True,
)

session = get_session("dashboard")
today = date.today()

def _pick(label: str, options: List[str], current: str, key: str) -> str:
    # Stale values stay selectable so saving does not silently change them.
    if current and current not in options:
        options = [current] + options
    if not current:
        options = [""] + options
    return st.selectbox(label, options, index=options.index(current), key=key)


def render_detail(record) -> None:
    choices = session.arrivals.field_choices(record.make)
    with st.form(f"detail_{record.id}"):
        cols = st.columns(3)
        vin = cols[0].text_input("VIN", value=record.vin, key=f"vin_{record.id}")
        lot_number = cols[1].text_input("Lot #", value=record.lot_number, key=f"lot_{record.id}")
        year = cols[2].text_input("Year", value=str(record.year or ""), key=f"year_{record.id}")
        make = _pick("Make", choices["make"], record.make, f"make_{record.id}")
        model = _pick("Model", choices["model"], record.model, f"model_{record.id}")
        trim = cols[2].text_input("Trim", value=record.trim, key=f"trim_{record.id}")
        color = _pick("Color", choices["color"], record.color, f"color_{record.id}")
        category = st.selectbox(
            "Category", choices["category"], index=choices["category"].index(record.category.value),
            key=f"cat_{record.id}",
        )
        fuel_type = st.selectbox(
            "Fuel", choices["fuel_type"], index=choices["fuel_type"].index(record.fuel_type.value),
            key=f"fuel_{record.id}",
        )
        title_options = [t.value for t in TitleStatus]
        has_title = st.selectbox(
            "Title", title_options, index=title_options.index(record.has_title.value), key=f"ht_{record.id}"
        )
        type_options = [t.value for t in TitleType]
        title_type = st.selectbox(
            "Title type", type_options, index=type_options.index(record.title_type.value), key=f"tt_{record.id}"
        )
        price = st.number_input("Price", min_value=0.0, value=float(record.price), key=f"price_{record.id}")

        st.markdown("**Seller**")
        seller_cols = st.columns(3)
        seller_name = seller_cols[0].text_input("Name", value=record.seller.name, key=f"sn_{record.id}")
        seller_phone = seller_cols[1].text_input("Phone", value=record.seller.phone, key=f"sp_{record.id}")
        seller_address = seller_cols[2].text_input("Address", value=record.seller.address, key=f"sa_{record.id}")

        st.markdown("**Transporter**")
        transporter_cols = st.columns(3)
        with transporter_cols[0]:
            driver = _pick("Company", choices["transporter.driver"], record.transporter.driver, f"td_{record.id}")
        transporter_phone = transporter_cols[1].text_input(
            "Phone", value=record.transporter.phone, key=f"tp_{record.id}"
        )
        transporter_address = transporter_cols[2].text_input(
            "Address", value=record.transporter.address, key=f"ta_{record.id}"
        )

        st.markdown("**Timeline**")
        timeline_cols = st.columns(6)
        dates = {}
        for col, step in zip(timeline_cols, timeline_steps(record)):
            name = step.field.split(".", 1)[1]
            dates[step.field] = col.date_input(step.label, value=step.day, key=f"{name}_{record.id}")

        notes = st.text_area("Notes", value=record.notes, key=f"notes_{record.id}")
        saved = st.form_submit_button("Save Details")

    if saved:
        patch = {
            "vin": vin,
            "lot_number": lot_number,
            "year": year,
            "make": make,
            "model": model,
            "trim": trim,
            "color": color,
            "category": category,
            "fuel_type": fuel_type,
            "has_title": has_title,
            "title_type": title_type,
            "price": price,
            "seller": {"name": seller_name, "phone": seller_phone, "address": seller_address},
            "transporter": {"driver": driver, "phone": transporter_phone, "address": transporter_address},
            "notes": notes,
            **dates,
        }
        try:
            session.arrivals.update(record.id, patch)
            st.success("Arrival saved.")
            st.rerun()
        except ValidationError as exc:
            for field, reason in exc.errors.items():
                st.error(f"{field}: {reason}")

    st.markdown("**Photos**")
    for index, image in enumerate(record.images):
        image_cols = st.columns([4, 1])
        image_cols[0].image(image, width=240)
        if image_cols[1].button("Remove", key=f"rm_img_{record.id}_{index}"):
            session.arrivals.remove_media(record.id, index)
            st.rerun()
    upload = st.file_uploader("Add photo", type=["png", "jpg", "jpeg", "webp"], key=f"up_img_{record.id}")
    if upload is not None and st.button("Upload Photo", key=f"do_img_{record.id}"):
        session.arrivals.begin_media_ingest(record.id, upload.getvalue(), mime_type=upload.type).resolve()
        st.rerun()

    st.markdown("**Documents**")
    for doc in record.documents:
        doc_cols = st.columns([4, 1])
        stamp = doc.date.isoformat() if doc.date else ""
        doc_cols[0].markdown(f"{doc.name} · {doc.type.value} · {stamp}")
        if doc_cols[1].button("Remove", key=f"rm_doc_{record.id}_{doc.id}"):
            session.arrivals.remove_document(record.id, doc.id)
            st.rerun()
    doc_type = st.selectbox("Document type", [d.value for d in DocumentType], key=f"doc_type_{record.id}")
    document = st.file_uploader("Add document", key=f"up_doc_{record.id}")
    if document is not None and st.button("Upload Document", key=f"do_doc_{record.id}"):
        session.arrivals.begin_document_ingest(
            record.id, document.getvalue(), doc_type, name=document.name, mime_type=document.type
        ).resolve(today)
        st.rerun()


with st.sidebar:
    events_tab, profiles_tab = st.tabs(["Events", "Profiles"])

    with events_tab:
        st.subheader("Recent Events")
        if st.button("Clear Events"):
            clear_events()
            st.success("Event log cleared.")
        events = read_events(limit=25)
        if not events:
            st.markdown("<span class='muted'>No events yet.</span>", unsafe_allow_html=True)
        else:
            for event in reversed(events):
                st.markdown(f"**{event['title']}**: {event['description']}")

    with profiles_tab:
        st.subheader("Settings Profiles")
        profiles = list_settings_profiles()
        if profiles:
            profile = st.selectbox("Profile", profiles, index=0)
            if st.button("Apply Profile"):
                session.settings.save(load_dispatch_settings(profile))
                st.success(f"Applied {profile}.")
        else:
            st.markdown("<span class='muted'>No stored profiles.</span>", unsafe_allow_html=True)

st.markdown("<div class='brand'>Arrival Dispatch</div>", unsafe_allow_html=True)

board_tab, assets_tab, registry_tab, settings_tab = st.tabs(
    ["Dispatch Board", "Ready Assets", "Registry", "Settings"]
)

with board_tab:
    records = session.arrivals.list()
    counters = summarize(records)
    cols = st.columns(4)
    for col, (name, label) in zip(
        cols,
        [("total", "Total"), ("delivered", "Delivered"), ("fixing", "Fixing"), ("ready", "Ready to Sell")],
    ):
        if col.button(f"{label}: {getattr(counters, name)}", key=f"counter_{name}"):
            session.board.apply_counter(name)

    filter_cols = st.columns(4)
    search = filter_cols[0].text_input("Search VIN / Lot", value=session.board.query.search)
    makes = [ALL] + session.registry.list_makes()
    make = filter_cols[1].selectbox(
        "Make", makes, index=makes.index(session.board.query.make) if session.board.query.make in makes else 0
    )
    models = [ALL] + (session.registry.models_for(make) if make != ALL else [])
    model = filter_cols[2].selectbox(
        "Model", models, index=models.index(session.board.query.model) if session.board.query.model in models else 0
    )
    statuses = [ALL] + [s.value for s in ArrivalStatus]
    status = filter_cols[3].selectbox("Status", statuses, index=statuses.index(session.board.query.status))
    session.board.set_filters(search=search, make=make, model=model, status=status)

    list_col, side_col = st.columns([3, 1])
    with list_col:
        if st.button("Add New Arrival"):
            created = session.arrivals.create()
            st.toast(f"Created arrival {created.id}")

        page = session.board.current_page(records)
        for record in page.items:
            with st.expander(f"{record.title} · {record.vin or 'No VIN'} · {record.status.value}"):
                actions = session.workflow.available_actions(record.id)
                if pickup_alert(record, session.settings.current, today):
                    st.markdown("<span class='badge overdue'>OVERDUE</span>", unsafe_allow_html=True)
                stale = session.registry.stale_references(record)
                if stale:
                    st.caption("No longer in the registry: " + ", ".join(stale.values()))
                row = st.columns(4)
                options = [s.value for s in session.workflow.status_options(record.id)]
                new_status = row[0].selectbox(
                    "Status",
                    options,
                    index=options.index(record.status.value),
                    key=f"status_{record.id}",
                )
                if new_status != record.status.value:
                    session.workflow.set_status(record.id, new_status)
                    st.rerun()
                destination = row[1].selectbox(
                    "Destination",
                    DESTINATIONS,
                    index=DESTINATIONS.index(record.destination),
                    key=f"dest_{record.id}",
                )
                if destination != record.destination:
                    session.workflow.reassign_destination(record.id, destination)
                if row[2].button(f"Title: {record.has_title.value}", key=f"title_{record.id}"):
                    session.workflow.cycle_title(record.id)
                    st.rerun()
                if row[3].button(f"Keys: {'Yes' if record.has_keys else 'No'}", key=f"keys_{record.id}"):
                    session.workflow.toggle_keys(record.id)
                    st.rerun()
                if not actions["mark_delivered"]:
                    st.caption("Keys required before delivery.")
                if not actions["mark_ready"]:
                    st.caption("Title required before Ready to Sell.")
                eta = estimated_ready_date(record, session.settings.current)
                if eta:
                    st.caption(f"Estimated ready: {eta.isoformat()}")
                steps = timeline_steps(record)
                st.markdown(
                    " → ".join(f"**{s.label}**" if s.passed else s.label for s in steps)
                )
                if record.status == ArrivalStatus.ready and st.button("Publish to Inventory", key=f"pub_{record.id}"):
                    promote_arrival(record, session.publisher, today, notifier=session.notifier)
                    st.success("Published.")
                if st.toggle("Edit details", key=f"edit_{record.id}"):
                    render_detail(record)

        buttons = session.board.buttons(records)
        if buttons:
            nav = st.columns(len(buttons))
            for col, number in zip(nav, buttons):
                if number is None:
                    col.markdown("…")
                elif col.button(str(number), key=f"page_{number}", disabled=number == session.board.page):
                    session.board.go_to(number, records)
                    st.rerun()

    with side_col:
        for heading, preview, target in [
            ("Pending Pick-up", pending_pickups(records), ArrivalStatus.paid),
            ("Pending Deliveries", pending_deliveries(records), ArrivalStatus.picked_up),
        ]:
            st.subheader(heading)
            if st.button(f"View All ({preview.total})", key=f"all_{target.value}"):
                session.board.set_filters(status=target.value)
                st.rerun()
            for item in preview.items:
                pickup = item.timeline.pickup
                label = pickup.isoformat() if pickup else "SCHEDULE NEEDED"
                if is_overdue(pickup, today):
                    label += " · OVERDUE"
                st.markdown(f"**{item.title}**  \n{label}")
            if preview.overflow:
                st.caption(f"+ {preview.overflow} more")
            if not preview.total:
                st.caption("Clear")

with registry_tab:
    make_col, color_col, transporter_col = st.columns(3)

    with make_col:
        st.subheader("Makes & Models")
        with st.form("add_make"):
            new_make = st.text_input("New make")
            if st.form_submit_button("Add Make"):
                try:
                    session.registry.add_make(new_make)
                except DispatchError as exc:
                    st.error(str(exc))
        with st.form("add_model"):
            parent = st.selectbox("Make", session.registry.list_makes())
            new_model = st.text_input("New model")
            if st.form_submit_button("Add Model"):
                try:
                    session.registry.add_model(parent, new_model)
                except DispatchError as exc:
                    st.error(str(exc))
        term = st.text_input("Filter makes or models", key="catalog_search")
        for make_name in session.registry.search_makes(term):
            st.markdown(f"**{make_name}**: {', '.join(session.registry.models_for(make_name)) or 'none'}")
            if st.button("Delete", key=f"del_make_{make_name}"):
                st.session_state["pending_delete"] = session.registry.request_delete(CatalogKind.make, make_name)
            for model_name in session.registry.models_for(make_name):
                if st.button(f"Delete {model_name}", key=f"del_model_{make_name}_{model_name}"):
                    st.session_state["pending_delete"] = session.registry.request_delete(
                        CatalogKind.model, model_name, parent_make=make_name
                    )

    with color_col:
        st.subheader("Colors")
        with st.form("add_color"):
            new_color = st.text_input("New color")
            if st.form_submit_button("Add Color"):
                try:
                    session.registry.add_color(new_color)
                except DispatchError as exc:
                    st.error(str(exc))
        term = st.text_input("Filter colors", key="color_search")
        for color in session.registry.search_colors(term):
            if st.button(f"Delete {color}", key=f"del_color_{color}"):
                st.session_state["pending_delete"] = session.registry.request_delete(CatalogKind.color, color)

    with transporter_col:
        st.subheader("Transporters")
        with st.form("add_transporter"):
            new_transporter = st.text_input("New transport company")
            if st.form_submit_button("Add Transporter"):
                try:
                    session.registry.add_transporter(new_transporter)
                except DispatchError as exc:
                    st.error(str(exc))
        term = st.text_input("Filter transporters", key="transporter_search")
        for transporter in session.registry.search_transporters(term):
            if st.button(f"Delete {transporter}", key=f"del_tr_{transporter}"):
                st.session_state["pending_delete"] = session.registry.request_delete(
                    CatalogKind.transporter, transporter
                )

    confirmation = st.session_state.get("pending_delete")
    if confirmation:
        st.warning(confirmation.warning)
        confirm_col, cancel_col = st.columns(2)
        if confirm_col.button("Confirm Delete"):
            session.registry.confirm_delete(confirmation)
            st.session_state["pending_delete"] = None
            st.rerun()
        if cancel_col.button("Cancel"):
            st.session_state["pending_delete"] = None
            st.rerun()

with assets_tab:
    st.subheader("Ready Assets")
    for vehicle in list(session.ready_assets.values()):
        with st.expander(f"{vehicle.title} · {vehicle.vin or 'No VIN'} · {vehicle.status.value}"):
            st.markdown(
                f"{vehicle.trim} · {vehicle.color} · {vehicle.location or 'No location'} · ${vehicle.price:,.0f}"
            )
            if st.button("Create Arrival", key=f"arrival_{vehicle.id}"):
                created = session.arrivals.create_from_ready_asset(vehicle)
                st.success(f"Created arrival {created.id}")

            if vehicle.status == VehicleStatus.sold:
                st.markdown(
                    f"Sold to **{vehicle.buyer_name}** ({vehicle.buyer_email}, {vehicle.buyer_phone}) "
                    f"for ${vehicle.sale_price or 0:,.0f} on {vehicle.sold_date or 'n/a'}"
                )
                sale_cols = st.columns(2)
                if sale_cols[0].button("Cancel Sale", key=f"cancel_{vehicle.id}"):
                    session.cancel_asset_sale(vehicle.id)
                    st.rerun()
                if sale_cols[1].button("Generate Contract", key=f"contract_{vehicle.id}"):
                    try:
                        draft = session.draft_contract(vehicle.id)
                        st.success(f"Contract {draft.contract_number} drafted.")
                    except PreconditionError as exc:
                        st.warning(str(exc))
            else:
                with st.form(f"sale_{vehicle.id}"):
                    buyer_name = st.text_input("Buyer name")
                    buyer_email = st.text_input("Buyer email")
                    buyer_phone = st.text_input("Buyer phone")
                    sale_price = st.text_input("Sale price", value=f"{vehicle.price:.0f}")
                    sold = st.form_submit_button("Mark as Sold")
                if sold:
                    try:
                        session.sell_asset(vehicle.id, buyer_name, buyer_email, buyer_phone, sale_price, today=today)
                        st.rerun()
                    except ValidationError as exc:
                        for field, reason in exc.errors.items():
                            st.error(f"{field}: {reason}")
                st.caption("Contracts can be generated once the vehicle is sold.")

    if session.contracts:
        st.subheader("Drafted Contracts")
        for draft in session.contracts:
            st.markdown(
                f"**{draft.contract_number}** · {draft.vehicle} · {draft.buyer_name} · ${draft.sale_price:,.0f}"
            )

with settings_tab:
    st.subheader("Dispatch Settings")
    current = session.settings.current
    with st.form("settings_form"):
        auto_eta = st.checkbox("Auto-calculate ETA", value=current.auto_calculate_eta)
        alert_days = st.number_input("Overdue alert (days)", min_value=0, value=current.overdue_alert_days)
        default_destination = st.selectbox(
            "Default destination", DESTINATIONS, index=DESTINATIONS.index(current.default_destination)
        )
        require_keys = st.checkbox("Require keys for delivery", value=current.require_keys_for_delivery)
        require_title = st.checkbox("Require title for Ready to Sell", value=current.require_title_for_ready)
        prep_time = st.number_input("Standard prep time (days)", min_value=0, value=current.standard_prep_time)
        saved = st.form_submit_button("Save Settings")

    if saved:
        try:
            session.settings.save(
                {
                    "auto_calculate_eta": auto_eta,
                    "overdue_alert_days": int(alert_days),
                    "default_destination": default_destination,
                    "require_keys_for_delivery": require_keys,
                    "require_title_for_ready": require_title,
                    "standard_prep_time": int(prep_time),
                }
            )
            st.success("Dispatch operational configuration updated.")
        except ValidationError as exc:
            for field, reason in exc.errors.items():
                st.error(f"{field}: {reason}")
