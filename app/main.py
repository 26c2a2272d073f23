"""
Streamlit Frontend for Profit Tracker

This is the user interface small-business owners interact with daily.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. No hidden actions

Every number on screen is recomputed from the latest snapshot the store
delivered. The UI never patches its own copy of the data after a write.
"""

import asyncio
from datetime import date, datetime, timedelta
from decimal import Decimal

import streamlit as st

from profit_tracker.aggregation import aggregate, daily_series, resolve_window
from profit_tracker.config import get_settings, validate_all_settings
from profit_tracker.models import (
    EXPENSE_CATEGORIES,
    GoalHorizon,
    MarginMode,
    RecordKind,
    WindowPreset,
)
from profit_tracker.orchestrator import (
    GoalFlow,
    LedgerFlow,
    SnapshotCache,
    build_dashboard,
    create_app_components,
)
from profit_tracker.services import StaticSessionProvider


# Page configuration
st.set_page_config(
    page_title="Profit Tracker",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


PRESET_LABELS = {
    WindowPreset.TODAY: "Today",
    WindowPreset.THIS_WEEK: "This week",
    WindowPreset.THIS_MONTH: "This month",
    WindowPreset.CUSTOM: "Custom range",
}

KIND_LABELS = {
    RecordKind.SALE: "💵 Sale",
    RecordKind.EXPENSE: "🧾 Expense",
    RecordKind.INVESTMENT: "🏗️ Investment",
}

HORIZON_LABELS = {
    GoalHorizon.MONTHLY: "Monthly",
    GoalHorizon.WEEKLY: "Weekly",
    GoalHorizon.CUSTOM: "Custom (work days)",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


@st.cache_resource
def get_session_provider():
    """The signed-in user, as configured for this deployment."""
    try:
        return StaticSessionProvider.from_settings()
    except Exception:
        return StaticSessionProvider()


@st.cache_resource
def get_snapshots(user_id: str):
    """
    Subscribe once per user. The caches are refilled by the store after
    every write, so each rerun reads one consistent snapshot.
    """
    ledger_flow, goal_flow, _ = get_components()
    session = get_session_provider().current_user()
    records = SnapshotCache()
    goals = SnapshotCache()
    run_async(ledger_flow.watch_records(session, records))
    run_async(goal_flow.watch_goals(session, goals))
    return records, goals


def money(amount: Decimal) -> str:
    symbol = get_settings().app.currency_symbol
    return f"{symbol} {amount:,.2f}"


def chart_rows(series) -> list[dict]:
    # Charts need plain floats
    return [
        {
            "day": point.label,
            "Revenue": float(point.revenue),
            "Expenses": float(point.expenses),
            "Profit": float(point.profit),
        }
        for point in series
    ]


def main():
    """Main application entry point."""
    ledger_flow, goal_flow, _ = get_components()
    session = get_session_provider().current_user()

    # Sidebar navigation
    st.sidebar.title("📈 Profit Tracker")
    st.sidebar.markdown("---")

    if session is None:
        st.title("📈 Profit Tracker")
        st.markdown("""
        <div class="info-box">
            <h4>🔒 Not signed in</h4>
            <p>Set <code>SESSION_USER_ID</code> in your <code>.env</code> file and reload.</p>
        </div>
        """, unsafe_allow_html=True)
        return

    if session.email:
        st.sidebar.caption(f"Signed in as {session.email}")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🏠 Home", "➕ New Entry", "🎯 Goals", "📊 Reports", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How it works:**
        1. Record every sale, expense and investment
        2. Set a profit goal
        3. Follow the daily pace you need
        """
    )

    record_cache, goal_cache = get_snapshots(session.user_id)

    # Route to appropriate page
    if page == "🏠 Home":
        render_home_page(ledger_flow, record_cache)
    elif page == "➕ New Entry":
        render_entry_page(ledger_flow)
    elif page == "🎯 Goals":
        render_goals_page(goal_flow, record_cache, goal_cache)
    elif page == "📊 Reports":
        render_reports_page(record_cache)
    elif page == "⚙️ Settings":
        render_settings_page(ledger_flow)


def render_home_page(ledger_flow: LedgerFlow, record_cache: SnapshotCache):
    """Render the dashboard."""
    st.title("🏠 Dashboard")
    settings = get_settings().app

    preset = st.selectbox(
        "Period",
        options=[WindowPreset.TODAY, WindowPreset.THIS_WEEK, WindowPreset.THIS_MONTH],
        index=2,
        format_func=lambda p: PRESET_LABELS[p],
    )

    view = build_dashboard(
        record_cache.snapshot,
        now=datetime.now(),
        preset=preset,
        week_start=settings.week_start,
        recent_limit=settings.recent_activity_limit,
        default_category=settings.default_expense_category,
    )
    stats = view.stats

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Revenue", money(stats.revenue))
    col2.metric("Expenses", money(stats.expenses))
    col3.metric("Profit", money(stats.profit))
    col4.metric("Margin", f"{stats.margin_percent:.1f}%")

    if stats.investments > 0:
        st.caption(f"Invested in the period: {money(stats.investments)}")

    st.markdown("---")
    st.subheader("Last 7 days")
    st.bar_chart(chart_rows(view.series), x="day", y=["Revenue", "Expenses"])

    st.markdown("---")
    st.subheader("Recent activity")
    if not view.recent:
        st.info("No entries yet. Use 'New Entry' to add your first sale.")
        return

    session = get_session_provider().current_user()
    for record in view.recent:
        col1, col2, col3 = st.columns([4, 2, 1])
        with col1:
            st.markdown(
                f"**{KIND_LABELS[record.kind]}** · {record.description}  \n"
                f"{record.occurred_at:%d/%m/%Y}"
                + (f" · {record.category}" if record.category else "")
            )
        with col2:
            sign = "+" if record.is_sale else "-"
            st.markdown(f"**{sign} {money(record.amount)}**")
        with col3:
            if st.button("🗑️", key=f"delete-{record.id}", help="Delete this entry"):
                result = run_async(ledger_flow.delete_record(session, record.id))
                if result.ok:
                    st.rerun()
                else:
                    st.error(result.error)


def render_entry_page(ledger_flow: LedgerFlow):
    """Render the new entry form."""
    st.title("➕ New Entry")
    settings = get_settings().app

    kind = st.radio(
        "What happened?",
        options=list(RecordKind),
        format_func=lambda k: KIND_LABELS[k],
        horizontal=True,
    )

    with st.form("entry_form", clear_on_submit=True):
        description = st.text_input(
            "Description *",
            max_chars=200,
            placeholder="Product sold, bill paid, equipment bought...",
        )
        amount = st.number_input("Amount *", min_value=0.0, step=1.0, format="%.2f")

        product_cost = None
        category = None
        if kind is RecordKind.SALE:
            product_cost = st.number_input(
                "Product cost (optional)",
                min_value=0.0,
                step=1.0,
                format="%.2f",
                help="What the goods you sold cost you",
            )
        elif kind is RecordKind.EXPENSE:
            options = list(EXPENSE_CATEGORIES) + [settings.default_expense_category]
            category = st.selectbox("Category", options=options)

        occurred_on = st.date_input("Date *", value=date.today())

        submitted = st.form_submit_button("💾 Save", type="primary")

    if not submitted:
        return

    session = get_session_provider().current_user()
    result = run_async(ledger_flow.add_record(
        session,
        kind=kind,
        amount=amount,
        description=description,
        occurred_on=occurred_on,
        category=category,
        product_cost=product_cost or None,
    ))

    if result.ok:
        st.success("✅ Entry saved")
        warnings = ledger_flow.validate(kind, amount, description, occurred_on, product_cost).warnings
        for warning in warnings:
            st.warning(f"⚠️ {warning}")
    else:
        st.error(result.error)


def render_goals_page(
    goal_flow: GoalFlow,
    record_cache: SnapshotCache,
    goal_cache: SnapshotCache,
):
    """Render goal creation and progress."""
    st.title("🎯 Goals")
    session = get_session_provider().current_user()

    with st.expander("New goal", expanded=not goal_cache.snapshot):
        horizon = st.selectbox(
            "Horizon",
            options=list(GoalHorizon),
            format_func=lambda h: HORIZON_LABELS[h],
        )
        target = st.number_input("Profit target *", min_value=0.0, step=100.0, format="%.2f")

        work_days = None
        if horizon is GoalHorizon.CUSTOM:
            work_days = int(st.number_input("Work days *", min_value=1, max_value=366, value=22))

        automatic = st.toggle(
            "Use my actual margin",
            value=True,
            help="Off: enter the margin you expect instead",
        )
        margin_mode = MarginMode.AUTOMATIC if automatic else MarginMode.MANUAL
        manual_margin = None
        if margin_mode is MarginMode.MANUAL:
            manual_margin = st.number_input(
                "Margin (%) *", min_value=0.0, max_value=100.0, value=30.0, step=1.0
            )

        if st.button("💾 Save goal", type="primary"):
            result = run_async(goal_flow.create_goal(
                session,
                horizon=horizon,
                target_amount=target,
                work_days=work_days,
                margin_mode=margin_mode,
                manual_margin_percent=manual_margin,
            ))
            if result.ok:
                st.success("✅ Goal saved")
                st.rerun()
            else:
                st.error(result.error)

    st.markdown("---")

    goals = goal_cache.snapshot
    if not goals:
        st.info("No goals yet. Create one above to see the daily pace you need.")
        return

    projections = goal_flow.projections(record_cache.snapshot, goals, now=datetime.now())

    for projection in projections:
        st.subheader(
            f"{HORIZON_LABELS[projection.horizon]} goal: {money(projection.target_amount)}"
        )
        st.progress(int(projection.progress_percent))

        col1, col2, col3 = st.columns(3)
        col1.metric("Profit so far", money(projection.current_progress))
        col2.metric("Remaining", money(projection.remaining))
        col3.metric("Days left", projection.effective_days)

        if projection.is_reached:
            st.success("🎉 Goal reached!")
        else:
            col1, col2 = st.columns(2)
            col1.metric("Profit needed per day", money(projection.daily_profit_needed))
            if projection.effective_margin > 0:
                col2.metric("Sales needed per day", money(projection.daily_revenue_needed))
            else:
                col2.warning("No margin yet, so no daily sales target can be computed")

        st.caption(f"Margin used: {projection.effective_margin * 100:.1f}%")

        if st.button("🗑️ Delete goal", key=f"delete-goal-{projection.goal_id}"):
            result = run_async(goal_flow.delete_goal(session, projection.goal_id))
            if result.ok:
                st.rerun()
            else:
                st.error(result.error)

        st.markdown("---")


def render_reports_page(record_cache: SnapshotCache):
    """Render reports for any date range."""
    st.title("📊 Reports")
    settings = get_settings().app

    today = date.today()
    col1, col2 = st.columns(2)
    with col1:
        start_date = st.date_input("From", value=today.replace(day=1))
    with col2:
        end_date = st.date_input("To", value=today)

    if end_date < start_date:
        st.error("'To' must not be before 'From'")
        return

    records = record_cache.snapshot
    window = resolve_window(
        WindowPreset.CUSTOM,
        datetime.now(),
        start_date=start_date,
        end_date=end_date,
    )
    stats = aggregate(records, window, settings.default_expense_category)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Revenue", money(stats.revenue))
    col2.metric("Expenses", money(stats.expenses))
    col3.metric("Profit", money(stats.profit))
    col4.metric("Investments", money(stats.investments))

    st.markdown("---")
    st.subheader("Day by day")
    days = min((end_date - start_date).days + 1, 92)
    series = daily_series(records, end_date - timedelta(days=days - 1), days)
    st.bar_chart(chart_rows(series), x="day", y=["Revenue", "Expenses", "Profit"])

    st.markdown("---")
    st.subheader("Expenses by category")
    if not stats.expense_by_category:
        st.info("No expenses in this period.")
    else:
        for label, total in sorted(
            stats.expense_by_category.items(), key=lambda item: item[1], reverse=True
        ):
            st.markdown(f"- **{label}**: {money(total)}")


def render_settings_page(ledger_flow: LedgerFlow):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Session", "session"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )

    st.markdown("---")
    st.markdown("### Danger zone")
    confirm = st.checkbox("I understand this deletes all my entries and goals")
    if st.button("🗑️ Delete all my data", disabled=not confirm):
        session = get_session_provider().current_user()
        result = run_async(ledger_flow.clear_user_data(session))
        if result.ok:
            st.success("All your data was deleted")
        else:
            st.error(result.error)

    if st.button("🚪 Sign out"):
        get_session_provider().sign_out()
        st.rerun()


if __name__ == "__main__":
    main()
