"""
Streamlit Dashboard for FinMind

A local front end over the same flows the HTTP API uses.

DESIGN PRINCIPLES:
1. The dashboard never computes anything itself
2. Every number shown comes from the insights flow
3. Entitlement errors are shown as plain upgrade / quota messages
4. The plan and quota status is always visible
"""

import asyncio
from decimal import Decimal

import streamlit as st

from finmind.audit import create_correlation_id
from finmind.config import validate_all_settings
from finmind.entitlements import AuthenticationError, EntitlementError
from finmind.insights import LAST_30D, LAST_90D, YTD
from finmind.models import Plan, Severity, TransactionKind
from finmind.orchestrator import AppComponents, create_app_components
from finmind.services.storage import DuplicateError


st.set_page_config(
    page_title="FinMind",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)

SEVERITY_BOX = {
    Severity.CRITICAL: st.error,
    Severity.WARNING: st.warning,
    Severity.INFO: st.info,
}

PERIOD_LABELS = {
    LAST_30D: "Last 30 days",
    LAST_90D: "Last 90 days",
    YTD: "Year to date",
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
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return run_async(create_app_components())


def money(value) -> str:
    return f"${Decimal(value):,.2f}"


def percent(value) -> str:
    return "n/a" if value is None else f"{Decimal(value) * 100:.1f}%"


def render_login(components: AppComponents):
    st.title("📈 FinMind")
    st.caption("Sign in to see your financial insights. Demo: demo@finmind.ai / demo123")

    sign_in, sign_up = st.tabs(["Sign in", "Create account"])

    with sign_in:
        with st.form("login"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            if st.form_submit_button("Sign in"):
                try:
                    account = run_async(components.entitlements.authenticate(email, password))
                    st.session_state.user_id = account.user_id
                    st.rerun()
                except AuthenticationError:
                    st.error("Email or password is wrong")

    with sign_up:
        with st.form("signup"):
            email = st.text_input("Email", key="signup_email")
            password = st.text_input("Password", type="password", key="signup_password")
            display_name = st.text_input("Name (optional)")
            if st.form_submit_button("Start free trial"):
                if "@" not in email or not password:
                    st.error("Please enter an email and a password")
                else:
                    try:
                        account = run_async(components.entitlements.register(
                            email, password, display_name or None
                        ))
                        st.session_state.user_id = account.user_id
                        st.rerun()
                    except DuplicateError:
                        st.error("That email is already registered")


def render_plan_sidebar(components: AppComponents, user_id: int):
    account = run_async(components.entitlements.ensure_active_plan(user_id))

    st.sidebar.markdown(f"**{account.display_name or account.email}**")
    st.sidebar.markdown(f"Plan: `{account.plan.value}`")
    if account.plan == Plan.TRIAL and account.trial_expires_at:
        st.sidebar.caption(f"Trial ends {account.trial_expires_at:%d %B %Y}")
    if account.plan == Plan.PLUS and account.ai_quota_remaining is not None:
        st.sidebar.progress(
            account.ai_quota_remaining / max(account.ai_quota or 1, 1),
            text=f"{account.ai_quota_remaining} of {account.ai_quota} insights left",
        )

    if not account.plan.is_paid:
        st.sidebar.markdown("---")
        col1, col2 = st.sidebar.columns(2)
        if col1.button("Get Plus"):
            run_async(components.entitlements.confirm_purchase(user_id, Plan.PLUS))
            st.rerun()
        if col2.button("Get Prime"):
            run_async(components.entitlements.confirm_purchase(user_id, Plan.PRIME))
            st.rerun()

    st.sidebar.markdown("---")
    if st.sidebar.button("Sign out"):
        del st.session_state.user_id
        st.rerun()


def render_insights_page(components: AppComponents, user_id: int):
    st.header("Advisor insights")

    col1, col2 = st.columns([3, 1])
    with col1:
        period = st.selectbox(
            "Period",
            list(PERIOD_LABELS),
            index=1,
            format_func=PERIOD_LABELS.get,
        )
    with col2:
        lang = st.selectbox("Language", ["en", "es", "fr", "de", "pt", "it"])

    if not st.button("Generate insights", type="primary"):
        return

    try:
        with st.spinner("Crunching your numbers..."):
            report = run_async(components.insights.generate_insights(
                user_id,
                period=period,
                lang=lang,
                correlation_id=create_correlation_id(),
            ))
    except EntitlementError as e:
        st.warning(e.user_message)
        return

    m = report.metrics
    row1 = st.columns(4)
    row1[0].metric("Net worth", money(m.net_worth))
    row1[1].metric("Assets", money(m.asset_total))
    row1[2].metric("Liabilities", money(m.liability_total))
    row1[3].metric("Debt / assets", percent(m.debt_to_asset_ratio))

    row2 = st.columns(4)
    row2[0].metric("Income", money(m.total_income))
    row2[1].metric("Expenses", money(m.total_expense))
    row2[2].metric("Savings rate", percent(m.savings_rate))
    row2[3].metric("Monthly burn", money(m.monthly_burn))

    if m.expense_by_category:
        st.subheader("Spending by category")
        st.bar_chart({k: float(v) for k, v in m.expense_by_category.items()})

    st.subheader("Findings")
    if not report.rules:
        st.success("No issues found for this period.")
    for finding in report.rules:
        SEVERITY_BOX[finding.severity](f"**{finding.title}**  \n{finding.message}")

    if report.llm_advice:
        st.subheader("Advisor notes")
        st.markdown(report.llm_advice)


def render_records_page(components: AppComponents, user_id: int):
    st.header("Records")

    summary = run_async(components.records.summary(user_id))
    cols = st.columns(3)
    cols[0].metric("Net worth", money(summary.net_worth))
    cols[1].metric("Income", money(summary.income_total))
    cols[2].metric("Expenses", money(summary.expense_total))

    assets_tab, liabilities_tab, transactions_tab = st.tabs(
        ["Assets", "Liabilities", "Transactions"]
    )

    with assets_tab:
        assets = run_async(components.records.list_assets(user_id))
        st.dataframe(
            [{"Name": a.name, "Tag": a.tag, "Value": float(a.value)} for a in assets],
            use_container_width=True,
        )
        with st.form("add_asset", clear_on_submit=True):
            name = st.text_input("Name")
            tag = st.text_input("Tag")
            value = st.number_input("Value", min_value=0.0, step=100.0)
            if st.form_submit_button("Add asset") and name:
                run_async(components.records.add_asset(user_id, name, Decimal(str(value)), tag or None))
                st.rerun()

    with liabilities_tab:
        liabilities = run_async(components.records.list_liabilities(user_id))
        st.dataframe(
            [{"Name": l.name, "Tag": l.tag, "Value": float(l.value)} for l in liabilities],
            use_container_width=True,
        )
        with st.form("add_liability", clear_on_submit=True):
            name = st.text_input("Name")
            tag = st.text_input("Tag")
            value = st.number_input("Value", min_value=0.0, step=100.0)
            if st.form_submit_button("Add liability") and name:
                run_async(components.records.add_liability(user_id, name, Decimal(str(value)), tag or None))
                st.rerun()

    with transactions_tab:
        transactions = run_async(components.records.list_transactions(user_id, 100))
        st.dataframe(
            [
                {
                    "Date": t.occurred_on,
                    "Title": t.title,
                    "Category": t.category,
                    "Amount": float(t.amount),
                }
                for t in transactions
            ],
            use_container_width=True,
        )
        with st.form("add_transaction", clear_on_submit=True):
            title = st.text_input("Title")
            kind = st.radio("Type", [k.value for k in TransactionKind], horizontal=True)
            amount = st.number_input("Amount", min_value=0.0, step=10.0)
            category = st.text_input("Category")
            occurred_on = st.date_input("Date")
            if st.form_submit_button("Add transaction") and title:
                run_async(components.records.add_transaction(
                    user_id,
                    title=title,
                    kind=TransactionKind(kind),
                    amount=Decimal(str(amount)),
                    category=category or None,
                    occurred_on=occurred_on,
                ))
                st.rerun()


def render_settings_page(components: AppComponents):
    """Render the settings page."""
    st.header("Settings")

    app_settings = components.settings.app
    st.markdown(f"Environment: `{app_settings.app_environment}`")
    if app_settings.debug_mode:
        st.warning("Debug mode is on. Error details are shown in the API responses.")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    sections = [
        ("Gemini (Advisor notes)", "gemini"),
        ("Database", "database"),
        ("Sessions", "auth"),
        ("Application", "app"),
    ]

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    storage_kind = "database" if components.storage.use_db else "in-memory store"
    st.caption(f"Records are kept in the {storage_kind}.")


def main():
    """Main application entry point."""
    components = get_components()

    user_id = st.session_state.get("user_id")
    if user_id is None:
        render_login(components)
        return

    st.sidebar.title("📈 FinMind")
    page = st.sidebar.radio("Navigate to:", ["Insights", "Records", "Settings"])
    render_plan_sidebar(components, user_id)

    if page == "Insights":
        render_insights_page(components, user_id)
    elif page == "Records":
        render_records_page(components, user_id)
    else:
        render_settings_page(components)


if __name__ == "__main__":
    main()
