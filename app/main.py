"""
Streamlit Frontend for SnapLedger

The presentation collaborator. It owns nothing but widgets: every
decision (what to extract, what to save, what a month totals to) is made
by the core in snapledger/.

The UI keeps the human-in-the-loop principle:
- User sees what was read from the receipt
- User confirms or edits
- Nothing is saved without explicit "Save" action
- Nothing is deleted without a yes/no confirmation
"""

import asyncio
from decimal import Decimal

import streamlit as st

from snapledger.models.receipt import Draft, ReceiptData
from snapledger.models.summary import MonthlySummary, TrendCategory
from snapledger.orchestrator import ExpenseSession, ReceiptCaptureFlow, create_app_components
from snapledger.validation import ReceiptValidator


st.set_page_config(
    page_title="SnapLedger",
    page_icon="🧾",
    layout="centered",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> tuple[ReceiptCaptureFlow, ExpenseSession]:
    """Create the flow and session once per server process."""
    return create_app_components()


def render_summary(summary: MonthlySummary):
    """Summary card for the month under the cursor."""
    trend = summary.trend
    if trend.category == TrendCategory.NO_PREVIOUS_DATA:
        delta, help_text = None, "No data for the previous month"
    elif trend.category == TrendCategory.NO_CHANGE:
        delta, help_text = "±0.0%", "Same as the previous month"
    else:
        delta, help_text = f"{trend.signed_percent:+.1f}%", "Compared with the previous month"

    st.metric(
        label=f"Spending in {summary.cursor.label}",
        value=f"{summary.total:,}",
        delta=delta,
        delta_color="inverse",
        help=help_text,
    )


def render_month_navigation(session: ExpenseSession):
    left, middle, right = st.columns([1, 2, 1])
    with left:
        if st.button("◀", key="prev_month"):
            session.previous_month()
            st.rerun()
    with middle:
        st.markdown(f"### {session.cursor.label}")
    with right:
        if st.button("▶", key="next_month"):
            session.next_month()
            st.rerun()


def render_capture(flow: ReceiptCaptureFlow):
    """Capture trigger: camera or file upload."""
    photo = st.camera_input("Take a photo of the receipt")
    upload = st.file_uploader(
        "...or upload one",
        type=["jpg", "jpeg", "png", "webp", "heic"],
    )
    source = photo or upload

    if source is None or st.session_state.get("draft") is not None:
        return

    if st.button("🔍 Read receipt", type="primary", disabled=not flow.can_capture):
        with st.spinner("Analyzing receipt..."):
            draft = run_async(flow.capture(source.getvalue(), source.type))
        st.session_state.draft = draft
        st.rerun()


def render_draft_form(flow: ReceiptCaptureFlow, draft: Draft):
    """Confirmation collaborator: edit, then save or cancel."""
    st.subheader("📋 Review")
    if draft.notice:
        st.warning(draft.notice)
    if draft.review.issues:
        st.info(ReceiptValidator.get_user_friendly_summary(draft.review))

    with st.form("draft_form"):
        store_name = st.text_input("Store", value=draft.data.store_name)
        receipt_date = st.date_input("Date", value=draft.data.date)
        amount = st.number_input(
            "Amount",
            min_value=0.0,
            value=float(draft.data.amount),
            step=1.0,
            format="%.2f",
        )
        save = st.form_submit_button("💾 Save", type="primary")
        cancel = st.form_submit_button("Cancel")

    if save:
        flow.confirm(
            ReceiptData(
                store_name=store_name,
                date=receipt_date,
                amount=Decimal(str(amount)).quantize(Decimal("0.01")),
            ),
            draft=draft,
        )
        st.session_state.draft = None
        st.rerun()
    elif cancel:
        flow.abandon(draft)
        st.session_state.draft = None
        st.rerun()


def render_expenses(session: ExpenseSession, summary: MonthlySummary):
    """Expense list with a yes/no confirmation before deletion."""
    if not summary.expenses:
        st.caption("No expenses recorded for this month.")
        return

    pending = st.session_state.get("pending_delete")

    for expense in summary.expenses:
        cols = st.columns([3, 2, 1])
        cols[0].markdown(f"**{expense.store_name or '(no store)'}**  \n{expense.date.isoformat()}")
        cols[1].markdown(f"{expense.amount:,}")

        if pending == expense.id:
            st.warning("Delete this expense?")
            yes, no = st.columns(2)
            if yes.button("Yes, delete", key=f"yes_{expense.id}"):
                session.delete(expense.id)
                st.session_state.pending_delete = None
                st.rerun()
            if no.button("No", key=f"no_{expense.id}"):
                st.session_state.pending_delete = None
                st.rerun()
        elif cols[2].button("🗑", key=f"del_{expense.id}"):
            st.session_state.pending_delete = expense.id
            st.rerun()


def main():
    """Main application entry point."""
    flow, session = get_components()

    st.title("🧾 SnapLedger")

    render_month_navigation(session)
    summary = session.summary()
    render_summary(summary)

    st.markdown("---")

    draft = st.session_state.get("draft")
    if draft is not None:
        render_draft_form(flow, draft)
    else:
        render_capture(flow)

    st.markdown("---")
    render_expenses(session, summary)


if __name__ == "__main__":
    main()
