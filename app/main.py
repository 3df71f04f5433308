"""
Streamlit Frontend for the Water Billing Ledger

This is the screen the operator uses every month: log meter readings,
record payments, print invoices.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every form is validated before anything changes
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

The UI enforces the load / edit / save cycle:
- The whole document is loaded once per session
- Each action applies a command and immediately saves
- A failed load or save is reported once, with a retry button
"""

import asyncio
from datetime import date

import pandas as pd
import streamlit as st

from water_billing.billing import (
    available_years,
    balance_status,
    calculate_property_balance,
    current_billing_period,
    default_period_for_year,
    format_billing_period,
    format_currency,
    format_gallons,
    format_short_period,
    get_last_six_months_usage,
    invoices_for_period,
    is_billing_reminder_day,
    make_period,
    monthly_totals,
)
from water_billing.config import get_settings, validate_all_settings
from water_billing.exports import (
    generate_activity_csv,
    generate_invoice_csv,
    render_balance_card,
    render_invoice_page,
    render_invoices_page,
)
from water_billing.ledger import (
    LedgerError,
    LedgerState,
    add_neighbor,
    build_activity,
    create_app_components,
    data_summary,
    delete_payment,
    delete_reading,
    log_reading,
    recent_payments,
    record_payment,
    remove_neighbor,
    revert_reading_to_previous,
    set_balance_adjustment,
    sort_activity,
    update_payment,
    update_property_address,
    update_reading,
    update_settings,
)
from water_billing.logging_setup import configure_from_settings
from water_billing.models import (
    ActivityType,
    AppData,
    BalanceStatus,
    BillingSettings,
    SortDirection,
    SortField,
)
from water_billing.services.storage import StorageError
from water_billing.validation import LedgerValidator, previous_reading


# Page configuration
st.set_page_config(
    page_title="Water Billing",
    page_icon="💧",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for the balance cards
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .credit-box {
        padding: 16px;
        background-color: #f0fdf4;
        border-radius: 10px;
        border-left: 5px solid #22c55e;
        margin: 6px 0;
    }
    .due-box {
        padding: 16px;
        background-color: #fef2f2;
        border-radius: 10px;
        border-left: 5px solid #dc2626;
        margin: 6px 0;
    }
    .big-number {
        font-size: 1.8em;
        font-weight: bold;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def init_logging():
    """Configure structured logging once per server process."""
    configure_from_settings()
    return True


def get_components() -> tuple[LedgerState, LedgerValidator]:
    """Get or create this session's ledger state."""
    if "ledger" not in st.session_state:
        st.session_state.ledger, st.session_state.validator = create_app_components()
    return st.session_state.ledger, st.session_state.validator


def load_ledger(ledger: LedgerState) -> bool:
    """Load the document once per session. Shows a retry button on failure."""
    if ledger.is_loaded:
        return True

    try:
        with st.spinner("Loading data..."):
            run_async(ledger.load(create_if_missing=ledger.storage.backend_name != "github"))
        return True
    except StorageError:
        st.error("Failed to load data. Please check your connection and try again.")
        if st.button("🔄 Retry"):
            st.rerun()
        return False


def apply_and_save(ledger: LedgerState, command, *args, **kwargs) -> bool:
    """Run a command, then save the whole document."""
    try:
        ledger.apply(command, *args, **kwargs)
    except LedgerError as e:
        st.error(str(e))
        return False

    try:
        run_async(ledger.persist())
    except StorageError:
        st.error("Failed to save. Your change is kept on this screen; use 'Retry save'.")
        return False
    return True


def show_validation(validator: LedgerValidator, result) -> bool:
    """Show validation issues. Returns True if the action may proceed."""
    if result.is_valid and not result.warnings:
        return True
    summary = validator.get_user_friendly_summary(result)
    if result.is_valid:
        st.warning(summary)
    else:
        st.error(summary)
    return result.is_valid


def main():
    """Main application entry point."""
    init_logging()
    app_settings = get_settings().app
    ledger, validator = get_components()

    # Sidebar navigation
    st.sidebar.title(f"💧 {app_settings.utility_name}")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🏠 Dashboard", "🏡 Properties", "🧾 Bills", "⚙️ Settings"],
        index=0,
    )

    if ledger.dirty and ledger.is_loaded:
        st.sidebar.warning("There are unsaved changes.")
        if st.sidebar.button("💾 Retry save"):
            try:
                run_async(ledger.persist())
                st.sidebar.success("Saved.")
            except StorageError:
                st.sidebar.error("Failed to save. Please try again.")

    if st.sidebar.button("🔄 Reload data"):
        st.session_state.pop("ledger", None)
        st.rerun()

    if not load_ledger(ledger):
        return

    # Route to appropriate page
    if page == "🏠 Dashboard":
        render_dashboard_page(ledger, validator)
    elif page == "🏡 Properties":
        render_properties_page(ledger)
    elif page == "🧾 Bills":
        render_bills_page(ledger)
    elif page == "⚙️ Settings":
        render_settings_page(ledger, validator)


# =============================================================================
# DASHBOARD
# =============================================================================

def render_balance_cards(data: AppData):
    if not data.properties:
        st.info("No properties yet. Add them to the data file to get started.")
        return

    columns = st.columns(len(data.properties))
    for column, prop in zip(columns, data.properties):
        balance = calculate_property_balance(prop, data.readings, data.payments, data.settings)
        with column:
            st.markdown(render_balance_card(prop.name, balance), unsafe_allow_html=True)


def render_payment_form(ledger: LedgerState, validator: LedgerValidator):
    data = ledger.data
    with st.form("payment_form", clear_on_submit=True):
        st.markdown("#### 💵 Record Payment")
        property_id = st.selectbox(
            "Property",
            options=[p.id for p in data.properties],
            format_func=data.property_name,
        )
        amount = st.number_input("Amount ($)", min_value=0.0, step=5.0, format="%.2f")
        received_date = st.date_input("Date received", value=date.today())
        notes = st.text_input("Notes (optional)")

        if st.form_submit_button("Save Payment", type="primary"):
            result = validator.validate_payment(data, property_id, amount, received_date)
            if show_validation(validator, result):
                if apply_and_save(ledger, record_payment, property_id, amount, received_date, notes):
                    st.success(f"Payment of {format_currency(amount)} recorded.")


def render_reading_form(ledger: LedgerState, validator: LedgerValidator):
    data = ledger.data
    st.markdown("#### 📟 Log Meter Reading")

    # Outside the form so the meter list follows the selected property
    property_id = st.selectbox(
        "Property",
        options=[p.id for p in data.properties],
        format_func=data.property_name,
        key="reading_property",
    )
    prop = data.property_by_id(property_id) if property_id else None
    meters = prop.meters if prop else []
    meter_id = st.selectbox(
        "Meter",
        options=[m.id for m in meters],
        format_func=lambda mid: next((m.label or m.id for m in meters if m.id == mid), mid),
        key="reading_meter",
    )

    previous = previous_reading(data.readings, meter_id) if meter_id else None
    if previous:
        st.caption(
            f"Previous reading: {previous.reading_value:,} "
            f"({format_billing_period(previous.billing_period)})"
        )

    with st.form("reading_form", clear_on_submit=True):
        reading_value = st.number_input("Meter reading", min_value=0, step=1)
        reading_date = st.date_input("Reading date", value=date.today())
        billing_period = st.text_input("Billing period (YYYY-MM)", value=current_billing_period())

        if st.form_submit_button("Save Reading", type="primary"):
            result = validator.validate_reading(
                data, property_id, int(reading_value), reading_date, billing_period, meter_id
            )
            if show_validation(validator, result):
                if apply_and_save(
                    ledger,
                    log_reading,
                    property_id,
                    int(reading_value),
                    reading_date,
                    billing_period,
                    meter_id=meter_id,
                ):
                    st.success("Reading saved.")


def render_activity_editor(ledger: LedgerState, validator: LedgerValidator, items):
    data = ledger.data
    options = {item.id: item for item in items}
    selected = st.selectbox(
        "Edit an entry",
        options=[None] + list(options),
        format_func=lambda key: "Select an entry..." if key is None else (
            f"{options[key].date.isoformat()} · {options[key].property_name} · "
            f"{options[key].description}"
        ),
    )
    if selected is None:
        return

    item = options[selected]
    if item.type == ActivityType.PAYMENT:
        payment = next(p for p in data.payments if p.id == item.original_id)
        with st.form(f"edit_{item.id}"):
            amount = st.number_input("Amount ($)", min_value=0.0, value=payment.amount, format="%.2f")
            received_date = st.date_input("Date received", value=payment.received_date)
            notes = st.text_input("Notes", value=payment.notes)
            col1, col2 = st.columns(2)
            save = col1.form_submit_button("Update", type="primary")
            delete = col2.form_submit_button("Delete")

        if save:
            result = validator.validate_payment(data, payment.property_id, amount, received_date)
            if show_validation(validator, result):
                if apply_and_save(ledger, update_payment, payment.id, amount, received_date, notes):
                    st.rerun()
        elif delete:
            if apply_and_save(ledger, delete_payment, payment.id):
                st.rerun()
    else:
        reading = next(r for r in data.readings if r.id == item.original_id)
        with st.form(f"edit_{item.id}"):
            reading_value = st.number_input("Meter reading", min_value=0, value=reading.reading_value)
            reading_date = st.date_input("Reading date", value=reading.reading_date)
            col1, col2, col3 = st.columns(3)
            save = col1.form_submit_button("Update", type="primary")
            revert = col2.form_submit_button("Revert to previous")
            delete = col3.form_submit_button("Delete")

        if save:
            result = validator.validate_reading(
                data,
                reading.property_id,
                int(reading_value),
                reading_date,
                reading.billing_period,
                reading.meter_id,
                exclude_id=reading.id,
            )
            if show_validation(validator, result):
                if apply_and_save(ledger, update_reading, reading.id, int(reading_value), reading_date):
                    st.rerun()
        elif revert:
            if apply_and_save(ledger, revert_reading_to_previous, reading.id):
                st.rerun()
        elif delete:
            if apply_and_save(ledger, delete_reading, reading.id):
                st.rerun()


def render_dashboard_page(ledger: LedgerState, validator: LedgerValidator):
    """Render balances, entry forms and the activity history."""
    app_settings = get_settings().app
    data = ledger.data

    st.title("🏠 Dashboard")

    if is_billing_reminder_day(date.today(), app_settings.billing_reminder_last_day):
        st.info(
            f"📅 Time to read the meters for "
            f"{format_billing_period(current_billing_period())}."
        )

    render_balance_cards(data)
    st.markdown("---")

    if data.properties:
        col1, col2 = st.columns(2)
        with col1:
            render_payment_form(ledger, validator)
        with col2:
            render_reading_form(ledger, validator)
        st.markdown("---")

    st.markdown("### 📋 Recent Activity")
    col1, col2 = st.columns(2)
    with col1:
        sort_field = st.selectbox(
            "Sort by",
            options=list(SortField),
            format_func=lambda f: f.value.title(),
        )
    with col2:
        sort_direction = st.selectbox(
            "Order",
            options=list(SortDirection),
            index=1,
            format_func=lambda d: "Oldest first" if d == SortDirection.ASC else "Newest first",
        )

    items = sort_activity(build_activity(ledger.data), sort_field, sort_direction)
    if not items:
        st.info("No payments or readings yet.")
        return

    table = pd.DataFrame([
        {
            "Date": item.date.isoformat(),
            "Type": item.type.value.title(),
            "Property": item.property_name,
            "Description": item.description,
            "Usage (gal)": format_gallons(item.usage) if item.usage is not None else "",
            "Amount": format_currency(item.amount) if item.amount is not None else "",
        }
        for item in items
    ])
    st.dataframe(table, hide_index=True, use_container_width=True)

    st.download_button(
        "📥 Download activity (CSV)",
        data=generate_activity_csv(ledger.data),
        file_name=f"activity-{date.today().isoformat()}.csv",
        mime="text/csv",
    )

    render_activity_editor(ledger, validator, items)


# =============================================================================
# PROPERTIES
# =============================================================================

def render_properties_page(ledger: LedgerState):
    """Render one property's account, usage history and contacts."""
    st.title("🏡 Properties")
    data = ledger.data
    if not data.properties:
        st.info("No properties yet.")
        return

    property_id = st.selectbox(
        "Property",
        options=[p.id for p in data.properties],
        format_func=data.property_name,
    )
    prop = data.property_by_id(property_id)
    balance = calculate_property_balance(prop, data.readings, data.payments, data.settings)
    status = balance_status(balance)

    col1, col2 = st.columns(2)
    with col1:
        st.metric(
            "Credit" if status == BalanceStatus.CREDIT else "Amount Due",
            format_currency(abs(balance)),
        )
        meters = ", ".join(m.label or m.id for m in prop.meters) or "None"
        st.caption(f"Meters: {meters}")

    with col2:
        with st.form("address_form"):
            address = st.text_area("Address", value=prop.address)
            if st.form_submit_button("Save address"):
                if apply_and_save(ledger, update_property_address, prop.id, address):
                    st.success("Address saved.")

    st.markdown("### 📈 Last 6 Months Usage")
    usage = get_last_six_months_usage(prop.id, data.readings)
    if usage:
        chart = pd.DataFrame(
            {"Gallons": [point.usage for point in usage]},
            index=[f"{format_short_period(p.period)} {p.period[:4]}" for p in usage],
        )
        st.bar_chart(chart)
    else:
        st.info("No readings for this property yet.")

    st.markdown("### 💵 Recent Payments")
    payments = recent_payments(data, prop.id)
    if payments:
        st.dataframe(
            pd.DataFrame([
                {
                    "Date": p.received_date.isoformat(),
                    "Amount": format_currency(p.amount),
                    "Notes": p.notes,
                }
                for p in payments
            ]),
            hide_index=True,
            use_container_width=True,
        )
    else:
        st.info("No payments recorded.")

    st.markdown("### 👥 Neighbors")
    for neighbor in [n for n in data.neighbors if n.property_id == prop.id]:
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"**{neighbor.name}** {neighbor.email}  \n{neighbor.notes}")
        if col2.button("Remove", key=f"remove_{neighbor.id}"):
            if apply_and_save(ledger, remove_neighbor, neighbor.id):
                st.rerun()

    with st.form("neighbor_form", clear_on_submit=True):
        name = st.text_input("Name")
        email = st.text_input("Email")
        notes = st.text_input("Notes")
        if st.form_submit_button("Add neighbor"):
            if apply_and_save(ledger, add_neighbor, prop.id, name, email, notes):
                st.rerun()

    with st.expander("⚖️ Balance adjustment"):
        st.caption("A manual correction added to the balance. Positive values are a credit.")
        with st.form("adjustment_form"):
            amount = st.number_input(
                "Adjustment ($)",
                value=float(prop.balance_adjustment),
                step=1.0,
                format="%.2f",
            )
            if st.form_submit_button("Save adjustment"):
                if apply_and_save(ledger, set_balance_adjustment, prop.id, amount):
                    st.rerun()


# =============================================================================
# BILLS
# =============================================================================

def render_bills_page(ledger: LedgerState):
    """Render the year chart, the month's invoices and downloads."""
    st.title("🧾 Bills")
    app_settings = get_settings().app
    data = ledger.data

    years = available_years(data.readings) or [str(date.today().year)]
    year = st.selectbox("Year", options=years)

    totals = monthly_totals(data, year, today=date.today())
    st.bar_chart(pd.DataFrame(
        {"Total billed ($)": [t.total_cost for t in totals]},
        index=[f"{t.month + 1:02d} {format_short_period(t.period)}" for t in totals],
    ))

    periods = [make_period(int(year), month) for month in range(1, 13)]
    default_period = default_period_for_year(data.readings, year)
    period = st.selectbox(
        "Month",
        options=periods,
        index=periods.index(default_period),
        format_func=format_billing_period,
        key=f"period_{year}",
    )

    invoices = invoices_for_period(data, period, today=date.today())
    if not invoices:
        st.info(f"No usage recorded for {format_billing_period(period)}.")
        return

    st.dataframe(
        pd.DataFrame([
            {
                "Property": data.property_name(inv.property_id),
                "Gallons": format_gallons(inv.total_gallons),
                "Current Charges": format_currency(inv.total_amount),
                "Previous Balance": format_currency(inv.previous_balance),
                "Amount Due": format_currency(inv.amount_due),
            }
            for inv in invoices
        ]),
        hide_index=True,
        use_container_width=True,
    )

    col1, col2 = st.columns(2)
    with col1:
        st.download_button(
            "🖨️ Download all invoices (HTML)",
            data=render_invoices_page(data, invoices, period, app_settings.utility_name),
            file_name=f"invoices-{period}.html",
            mime="text/html",
        )
    with col2:
        st.download_button(
            "📥 Download invoices (CSV)",
            data=generate_invoice_csv(data, invoices),
            file_name=f"invoices-{period}.csv",
            mime="text/csv",
        )

    for inv in invoices:
        name = data.property_name(inv.property_id)
        with st.expander(f"{name} · {format_currency(inv.amount_due)} due"):
            st.markdown(f"**Usage:** {format_gallons(inv.total_gallons)} gallons")
            st.markdown(f"Monthly Service Fee: {format_currency(inv.fixed_charge)}")
            for tier, gallons, charge in (
                (1, inv.tier1_gallons, inv.tier1_charge),
                (2, inv.tier2_gallons, inv.tier2_charge),
                (3, inv.tier3_gallons, inv.tier3_charge),
            ):
                if gallons > 0:
                    st.markdown(f"Tier {tier}: {format_gallons(gallons)} gal · {format_currency(charge)}")
            st.markdown(f"**Current Charges:** {format_currency(inv.total_amount)}")
            st.download_button(
                "🖨️ Download invoice (HTML)",
                data=render_invoice_page(data, inv, app_settings.utility_name),
                file_name=f"invoice-{inv.property_id}-{period}.html",
                mime="text/html",
                key=f"download_{inv.id}",
            )


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(ledger: LedgerState, validator: LedgerValidator):
    """Render rate settings, data summary and connection status."""
    st.title("⚙️ Settings")
    data = ledger.data
    rates = data.settings

    st.markdown("### 💲 Water Rates")
    with st.form("rates_form"):
        fixed = st.number_input("Monthly service fee ($)", value=float(rates.fixed_monthly_fee), format="%.2f")
        col1, col2 = st.columns(2)
        with col1:
            tier1_limit = st.number_input("Tier 1 limit (gallons)", value=int(rates.tier1_limit), step=500)
            tier2_limit = st.number_input("Tier 2 limit (gallons)", value=int(rates.tier2_limit), step=500)
        with col2:
            tier1_rate = st.number_input("Tier 1 rate ($ / 1,000 gal)", value=float(rates.tier1_rate_per_thousand), format="%.2f")
            tier2_rate = st.number_input("Tier 2 rate ($ / 1,000 gal)", value=float(rates.tier2_rate_per_thousand), format="%.2f")
            tier3_rate = st.number_input("Tier 3 rate ($ / 1,000 gal)", value=float(rates.tier3_rate_per_thousand), format="%.2f")

        if st.form_submit_button("Save rates", type="primary"):
            new_rates = rates.model_copy(update={
                "fixed_monthly_fee": fixed,
                "tier1_limit": int(tier1_limit),
                "tier1_rate_per_thousand": tier1_rate,
                "tier2_limit": int(tier2_limit),
                "tier2_rate_per_thousand": tier2_rate,
                "tier3_rate_per_thousand": tier3_rate,
            })
            if show_validation(validator, validator.validate_settings(new_rates)):
                if apply_and_save(ledger, update_settings, new_rates):
                    st.success("Rates saved.")

    defaults = BillingSettings()
    st.caption(
        f"Defaults: {format_currency(defaults.fixed_monthly_fee)} per month, "
        f"tiers at {defaults.tier1_limit:,} and {defaults.tier2_limit:,} gallons."
    )

    st.markdown("---")
    st.markdown("### 📊 Data Summary")
    summary = data_summary(data)
    columns = st.columns(5)
    for column, (label, value) in zip(columns, [
        ("Properties", summary.properties),
        ("Readings", summary.readings),
        ("Payments", summary.payments),
        ("Stored invoices", summary.invoices),
        ("Neighbors", summary.neighbors),
    ]):
        column.metric(label, value)

    st.markdown("---")
    st.markdown("### Connection Status")
    st.markdown(f"**Storage:** {ledger.storage.describe()}")

    status = validate_all_settings()
    sections = [
        ("Storage", "storage"),
        ("GitHub (deployment storage)", "github"),
        ("Application", "app"),
    ]
    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.warning(f"⚠️ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
