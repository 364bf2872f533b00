"""Streamlit app for the Finance Manager.

The page shows the current budget cycle's totals, lets the user add
expenses, incomes, recurring charges and quick-add labels, browse and
filter expenses, view charts, keep the monthly savings history and
download PDF reports.

To run the dashboard from the command line::

    streamlit run finance_manager/dashboard.py

Without Supabase credentials the app runs against an in-memory store that
lives for the browser session, which is handy for trying things out.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import sys
from datetime import date
from typing import Any, Callable, Optional, Tuple

import streamlit as st

if __package__:
    from . import aggregation as agg
    from . import reports
    from . import visualization as viz
    from .config import load_settings
    from .exceptions import FinanceError
    from .filters import ExpenseFilter
    from .formatting import escape_for_markdown, format_currency, format_percent
    from .local_storage import LocalListStore
    from .models import ALL_CATEGORIES, EXPENSE_CATEGORIES, Expense, decode_receipt
    from .preferences import PreferencesStore
    from .repository import FinanceRepository
    from .state import AppState, FinanceService, describe_error
    from .store import InMemoryDocumentStore, SupabaseDocumentStore
else:
    CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
    PARENT_DIR = os.path.dirname(CURRENT_DIR)
    if PARENT_DIR not in sys.path:
        sys.path.insert(0, PARENT_DIR)
    from finance_manager import aggregation as agg  # type: ignore
    from finance_manager import reports  # type: ignore
    from finance_manager import visualization as viz  # type: ignore
    from finance_manager.config import load_settings  # type: ignore
    from finance_manager.exceptions import FinanceError  # type: ignore
    from finance_manager.filters import ExpenseFilter  # type: ignore
    from finance_manager.formatting import escape_for_markdown, format_currency, format_percent  # type: ignore
    from finance_manager.local_storage import LocalListStore  # type: ignore
    from finance_manager.models import ALL_CATEGORIES, EXPENSE_CATEGORIES, Expense, decode_receipt  # type: ignore
    from finance_manager.preferences import PreferencesStore  # type: ignore
    from finance_manager.repository import FinanceRepository  # type: ignore
    from finance_manager.state import AppState, FinanceService, describe_error  # type: ignore
    from finance_manager.store import InMemoryDocumentStore, SupabaseDocumentStore  # type: ignore

logger = logging.getLogger(__name__)

DEMO_USER_ID = "demo-user"


def build_service() -> FinanceService:
    """Wire the service to Supabase, or to a per-session in-memory store."""
    settings = load_settings()
    if settings.has_remote_store:
        store = SupabaseDocumentStore.from_credentials(settings.supabase_url, settings.supabase_key)
    else:
        store = st.session_state.setdefault("demo_store", InMemoryDocumentStore())
    return FinanceService(
        FinanceRepository(store, settings),
        PreferencesStore(store, settings),
        LocalListStore(settings.local_store_path),
    )


def run_action(action: Callable[[AppState], AppState], success: str) -> bool:
    """Apply an action to the session state; show errors instead of raising."""
    try:
        st.session_state.app_state = action(st.session_state.app_state)
    except FinanceError as exc:
        st.error(describe_error(exc))
        return False
    st.success(success)
    return True


def _load_state(service: FinanceService, user_id: str) -> Optional[AppState]:
    if st.session_state.get("app_state") and st.session_state.app_state.user_id == user_id:
        return st.session_state.app_state
    try:
        state = service.load_state(user_id)
    except FinanceError as exc:
        st.error(f"Fetch Error: {describe_error(exc)}")
        return None
    for warning in state.warnings:
        st.warning(warning)
    try:
        state, created = service.generate_monthly_saving(state)
    except FinanceError as exc:
        logger.error("Error generating monthly report: %s", exc)
        created = None
    if created is not None:
        st.toast(f"Generated financial report for {created.month}")
    st.session_state.app_state = state
    return state


def main() -> None:
    """Entry point for the Streamlit app."""
    st.set_page_config(page_title="Finance Manager", page_icon="💰", layout="wide")
    st.title("Finance Manager")
    st.caption("Track. Analyze. Save.")

    settings = load_settings()
    if not settings.has_remote_store:
        st.info("Supabase is not configured; data is kept in memory for this session only.")
    user_id = settings.user_id or st.sidebar.text_input("User ID", value=DEMO_USER_ID).strip()
    if not user_id:
        st.info("Enter a user ID to begin.")
        st.stop()

    try:
        service = build_service()
    except FinanceError as exc:
        st.error(describe_error(exc))
        st.stop()
    state = _load_state(service, user_id)
    if state is None:
        st.stop()

    _render_settings(service)
    state = st.session_state.app_state
    _render_overview(state)

    add_tab, expenses_tab, charts_tab, recurring_tab, reports_tab, savings_tab = st.tabs(
        ["Add", "Expenses", "Charts", "Recurring", "Reports", "Savings History"]
    )
    with add_tab:
        _render_add_forms(service)
    with expenses_tab:
        _render_expense_list(service)
    with charts_tab:
        _render_charts(st.session_state.app_state)
    with recurring_tab:
        _render_recurring(service)
    with reports_tab:
        _render_reports(st.session_state.app_state)
    with savings_tab:
        _render_savings_history(service)


def _render_settings(service: FinanceService) -> None:
    state = st.session_state.app_state
    with st.sidebar.form("salary_settings"):
        st.subheader("Settings")
        salary = st.number_input("Monthly Salary", min_value=0.0, value=float(state.salary), step=1000.0)
        renewal_day = st.number_input("Salary Renewal Day", min_value=1, max_value=31, value=int(state.renewal_day))
        if st.form_submit_button("Save"):
            run_action(lambda s: service.save_salary(s, salary, renewal_day), "Settings updated successfully")


def _render_overview(state: AppState) -> None:
    summary = agg.cycle_summary(
        state.expenses, state.incomes, state.recurring_expenses, state.salary, state.renewal_day
    )
    st.caption(f"Current cycle: {summary.window.start_date:%b %d, %Y} - {summary.window.end_date:%b %d, %Y}")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Income", format_currency(summary.total_income))
    col2.metric("Expenses This Cycle", format_currency(summary.expenses_total))
    col3.metric("Remaining Balance", format_currency(summary.remaining))
    col4.metric("Savings Rate", format_percent(summary.savings_rate))
    st.caption(f"All-time expenses: {escape_for_markdown(format_currency(summary.all_time_expenses))}")


def _render_add_forms(service: FinanceService) -> None:
    state = st.session_state.app_state
    left, right = st.columns(2)
    with left.form("add_expense", clear_on_submit=True):
        st.subheader("Add Expense")
        amount = st.text_input("Amount")
        category = st.selectbox("Category", EXPENSE_CATEGORIES)
        description = st.text_input("Description")
        expense_date = st.date_input("Date", value=date.today())
        upload = st.file_uploader("Receipt (max 5MB)", type=["png", "jpg", "jpeg", "pdf"])
        if st.form_submit_button("Save Expense"):
            receipt, receipt_name = _encode_upload(upload)
            run_action(
                lambda s: service.add_expense(s, amount, category, description, expense_date, receipt, receipt_name),
                "Expense added",
            )

    with right.form("add_income", clear_on_submit=True):
        st.subheader("Add Income")
        income_amount = st.text_input("Amount", key="income_amount")
        source = st.text_input("Source")
        income_date = st.date_input("Date received", value=date.today())
        if st.form_submit_button("Save Income"):
            run_action(lambda s: service.add_income(s, income_amount, source, income_date), "Income added successfully")
    for income in st.session_state.app_state.incomes:
        cols = right.columns([3, 3, 2, 1])
        cols[0].write(f"{income.date:%b %d, %Y}")
        cols[1].write(income.description)
        cols[2].write(format_currency(income.amount))
        if cols[3].button("Delete", key=f"del_income_{income.id}"):
            run_action(lambda s, iid=income.id: service.delete_income(s, iid), "Income deleted")

    st.subheader("Quick Add")
    if state.saved_labels:
        columns = st.columns(min(len(state.saved_labels), 4))
        for index, label in enumerate(state.saved_labels):
            column = columns[index % len(columns)]
            if column.button(f"{label.name} ({format_currency(label.amount)})", key=f"label_{label.id}"):
                run_action(lambda s, lid=label.id: service.add_expense_from_label(s, lid), "Expense added")
            if column.button("Remove", key=f"del_label_{label.id}"):
                run_action(lambda s, lid=label.id: service.delete_saved_label(s, lid), "Label deleted")
    with st.form("add_label", clear_on_submit=True):
        name = st.text_input("Label name")
        label_amount = st.text_input("Amount", key="label_amount")
        label_category = st.selectbox("Category", EXPENSE_CATEGORIES, key="label_category")
        if st.form_submit_button("Save Label"):
            run_action(lambda s: service.add_saved_label(s, name, label_amount, label_category), "Label saved")


def _encode_upload(upload: Any) -> Tuple[Optional[str], Optional[str]]:
    """Turn an uploaded file into a data-URL receipt and its filename."""
    if upload is None:
        return None, None
    payload = base64.b64encode(upload.getvalue()).decode("ascii")
    return f"data:{upload.type or 'application/octet-stream'};base64,{payload}", upload.name


def _render_expense_list(service: FinanceService) -> None:
    state = st.session_state.app_state
    col1, col2, col3, col4 = st.columns(4)
    expense_filter = ExpenseFilter(
        search=col1.text_input("Search"),
        category=col2.selectbox("Category", [ALL_CATEGORIES] + EXPENSE_CATEGORIES, key="filter_category"),
        start=col3.date_input("From", value=None),
        end=col4.date_input("To", value=None),
    )
    expenses = expense_filter.apply(state.expenses)
    if not expenses:
        st.info("No expenses match the selected filters." if expense_filter.has_active_filters else "No expenses yet.")
        return
    for expense in expenses:
        cols = st.columns([2, 2, 4, 2, 1])
        cols[0].write(f"{expense.date:%b %d, %Y}")
        cols[1].write(expense.category)
        cols[2].write(expense.description or "-")
        cols[3].write(format_currency(expense.amount))
        if cols[4].button("Delete", key=f"del_{expense.id}"):
            run_action(lambda s, eid=expense.id: service.delete_expense(s, eid), "Expense deleted")
        if expense.receipt:
            with st.expander(f"Receipt: {expense.receipt_name or 'attachment'}", expanded=False):
                _render_receipt(expense)
        with st.expander("Edit", expanded=False):
            _render_expense_editor(service, expense)


def _render_receipt(expense: Expense) -> None:
    try:
        mime, data = decode_receipt(expense.receipt)
    except (binascii.Error, ValueError):
        logger.warning("Receipt for expense %s could not be decoded", expense.id)
        st.warning("This receipt could not be read.")
        return
    if mime.startswith("image/"):
        st.image(data, caption=expense.receipt_name)
    st.download_button(
        "Download receipt",
        data=data,
        file_name=expense.receipt_name or f"receipt-{expense.id}",
        mime=mime or "application/octet-stream",
        key=f"receipt_{expense.id}",
    )


def _render_expense_editor(service: FinanceService, expense: Expense) -> None:
    with st.form(f"edit_{expense.id}"):
        amount = st.text_input("Amount", value=f"{expense.amount:.2f}")
        category = st.selectbox(
            "Category",
            EXPENSE_CATEGORIES,
            index=EXPENSE_CATEGORIES.index(expense.category) if expense.category in EXPENSE_CATEGORIES else 0,
        )
        description = st.text_input("Description", value=expense.description)
        expense_date = st.date_input("Date", value=expense.date)
        upload = st.file_uploader("Replace receipt (max 5MB)", type=["png", "jpg", "jpeg", "pdf"])
        remove_receipt = st.checkbox("Remove receipt", disabled=not expense.receipt)
        if st.form_submit_button("Update Expense"):
            changes = {"amount": amount, "category": category, "description": description, "date": expense_date}
            if upload is not None:
                changes["receipt"], changes["receipt_name"] = _encode_upload(upload)
            elif remove_receipt:
                changes["receipt"] = None
            run_action(lambda s: service.update_expense(s, expense.id, **changes), "Expense updated")


def _render_charts(state: AppState) -> None:
    months = agg.available_months(state.expenses)
    selected = st.selectbox("Month", [ALL_CATEGORIES] + months, key="chart_month")
    month_expenses = agg.expenses_in_month(state.expenses, selected)
    st.plotly_chart(viz.create_category_pie_chart(agg.category_breakdown(month_expenses)), use_container_width=True)
    st.plotly_chart(viz.create_monthly_trend_chart(agg.monthly_trend(state.expenses)), use_container_width=True)


def _render_recurring(service: FinanceService) -> None:
    state = st.session_state.app_state
    st.metric("Total recurring per cycle", format_currency(state.recurring_total))
    for item in state.recurring_expenses:
        cols = st.columns([4, 3, 2, 1])
        cols[0].write(item.label)
        cols[1].write(item.category)
        cols[2].write(format_currency(item.amount))
        if cols[3].button("Delete", key=f"del_rec_{item.id}"):
            run_action(lambda s, rid=item.id: service.delete_recurring_expense(s, rid), "Recurring expense deleted")
        with st.expander(f"Edit {item.label}", expanded=False), st.form(f"edit_rec_{item.id}"):
            new_label = st.text_input("Label", value=item.label)
            new_amount = st.text_input("Amount", value=f"{item.amount:.2f}")
            if st.form_submit_button("Update"):
                run_action(
                    lambda s, rid=item.id: service.update_recurring_expense(s, rid, label=new_label, amount=new_amount),
                    "Recurring expense updated",
                )
    with st.form("add_recurring", clear_on_submit=True):
        label = st.text_input("Label (e.g. Netflix, SIP)")
        amount = st.text_input("Amount", key="recurring_amount")
        category = st.selectbox("Category", EXPENSE_CATEGORIES, key="recurring_category")
        if st.form_submit_button("Add Recurring Expense"):
            run_action(lambda s: service.add_recurring_expense(s, label, amount, category), "Recurring expense added")


def _render_reports(state: AppState) -> None:
    monthly = agg.monthly_reports(state.expenses, state.salary, state.recurring_total)
    if not monthly:
        st.info("No expenses to report yet.")
        return
    chosen = st.multiselect("Months", [r.month for r in monthly])
    include_receipts = st.checkbox("Include receipt images")
    selected = reports.selected_reports(monthly, chosen)
    for report in selected:
        st.markdown(
            f"**{report.month_display}** - {escape_for_markdown(format_currency(report.total_expenses))} spent, "
            f"{report.transaction_count} transactions"
        )
    if selected:
        st.download_button(
            "Download PDF",
            data=reports.build_monthly_report_pdf(selected, state.salary, include_receipts=include_receipts),
            file_name=reports.report_filename(selected),
            mime="application/pdf",
        )


def _render_savings_history(service: FinanceService) -> None:
    state = st.session_state.app_state
    year = date.today().year
    history = agg.savings_history(state.monthly_history, year)
    st.plotly_chart(viz.create_savings_history_chart(history), use_container_width=True)
    for saving in history:
        cols = st.columns([3, 3, 3, 1])
        cols[0].write(saving.month)
        cols[1].write(f"Spent {format_currency(saving.expenses)}")
        cols[2].write(f"Saved {format_currency(saving.saved)}")
        if cols[3].button("Delete", key=f"del_saving_{saving.id}"):
            run_action(lambda s, sid=saving.id: service.delete_monthly_saving(s, sid), "Report deleted")

    rows = agg.annual_report(state.expenses, state.salary, year - 1)
    if rows is None:
        st.caption(f"No data found for {year - 1}.")
    else:
        st.download_button(
            f"Download {year - 1} annual report",
            data=reports.build_annual_report_pdf(rows, year - 1),
            file_name=f"financial-report-{year - 1}.pdf",
            mime="application/pdf",
        )


if __name__ == "__main__":
    main()
