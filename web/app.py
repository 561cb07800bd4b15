#!/usr/bin/env python3
from __future__ import annotations

from pathlib import Path

import pandas as pd
import streamlit as st

from refund_desk.classify import CATEGORY_COLORS, CellCategory, classify_records
from refund_desk.errors import RefundDeskError
from refund_desk.exporter import purchases_frame
from refund_desk.loader import TEXT_FORMATS, load_bytes
from refund_desk.records import DERIVED_ROLES, DEFAULT_COLUMNS, ColumnMapping, Role
from refund_desk.session import RefundSession

CATEGORY_LABELS = {
    CellCategory.GROUP_FIRST: "First order for a recipient (carries the group refund)",
    CellCategory.MISSING_SHIPPING_PAID: "Shipping paid missing or zero",
    CellCategory.MISSING_SHIPPING_COST: "Shipping cost missing",
    CellCategory.REFUND_VALID: "Refund computed from complete data",
    CellCategory.REFUND_ZERO_OR_NEGATIVE: "Refund is blank, zero or negative",
    CellCategory.REFUND_MISSING_DATA: "Refund computed with missing data",
    CellCategory.TOTALS: "Totals row",
}


def ensure_state() -> None:
    st.session_state.setdefault("session", RefundSession())
    st.session_state.setdefault("loaded_name", None)
    st.session_state.setdefault("messages", [])


def current_session() -> RefundSession:
    return st.session_state["session"]


def mapping_from_inputs() -> ColumnMapping:
    overrides = {}
    for role in Role:
        value = st.session_state.get(f"column_{role.value}")
        if value is not None:
            overrides[role] = value.strip()
    return ColumnMapping.with_overrides(overrides)


def load_upload(upload) -> None:
    session = current_session()
    before = session.snapshot()
    try:
        loaded = load_bytes(upload.getvalue(), Path(upload.name).suffix or ".csv")
        session.mapping = mapping_from_inputs()
        session.load_loaded(loaded, upload.name)
        st.session_state["loaded_name"] = upload.name
        st.session_state["messages"] = []
    except (ValueError, RefundDeskError) as exc:
        session.restore(before)
        st.session_state["messages"] = [str(exc)]


def editable_frame(session: RefundSession) -> pd.DataFrame:
    return purchases_frame(session.data_records, session.columns, session.mapping)


def apply_edits(session: RefundSession, edited: pd.DataFrame) -> list[str]:
    errors = []
    for index, record in enumerate(session.data_records):
        for column in session.columns:
            role = session.mapping.role_for(column)
            if role is None or role in DERIVED_ROLES:
                continue
            new_value = edited.at[index, column]
            new_value = "" if pd.isna(new_value) else str(new_value)
            if new_value == record.text(role):
                continue
            try:
                session.update_cell(index, role, new_value)
            except (ValueError, RefundDeskError) as exc:
                errors.append(f"Row {index + 1}: {exc}")
    session.recompute()
    return errors


def highlighted_view(session: RefundSession):
    frame = purchases_frame(session.records, session.columns, session.mapping)
    grid = classify_records(session.records)

    def row_styles(row: pd.Series) -> list[str]:
        categories = grid[row.name]
        styles = []
        for column in frame.columns:
            role = session.mapping.role_for(column)
            color = CATEGORY_COLORS.get(categories.get(role)) if role is not None else None
            styles.append(f"background-color: #{color}" if color else "")
        return styles

    return frame.style.apply(row_styles, axis=1)


def render_legend() -> None:
    for category, label in CATEGORY_LABELS.items():
        color = CATEGORY_COLORS[category]
        st.markdown(
            f'<span style="background:#{color};padding:0 0.6em;margin-right:0.5em">&nbsp;</span>{label}',
            unsafe_allow_html=True,
        )


def render_stats(pairs: list[tuple[str, str]]) -> None:
    st.dataframe(pd.DataFrame(pairs, columns=["Metric", "Value"]), width="stretch", hide_index=True)


def render_mapping_inputs(disabled: bool) -> None:
    with st.expander("Column mapping", expanded=False):
        cols = st.columns(3)
        for idx, role in enumerate(Role):
            cols[idx % 3].text_input(
                role.value.replace("_", " ").title(),
                value=DEFAULT_COLUMNS[role],
                key=f"column_{role.value}",
                disabled=disabled,
            )


def main() -> None:
    st.set_page_config(page_title="refund-desk", page_icon="📦", layout="wide")
    ensure_state()

    st.title("refund-desk")
    st.caption("Import an order export, review shipping refunds per recipient, and export the results.")

    render_mapping_inputs(disabled=False)
    upload = st.file_uploader("Order export", type=[ext.lstrip(".") for ext in sorted(TEXT_FORMATS)])
    if upload is not None and upload.name != st.session_state["loaded_name"]:
        load_upload(upload)

    for message in st.session_state["messages"]:
        st.error(message)

    session = current_session()
    if not session.records:
        st.info("Upload a .csv, .tsv or .txt order export to begin.")
        return

    metrics = st.columns(4)
    metrics[0].metric("Orders", session.summary.order_count)
    metrics[1].metric("Recipients", session.customers.total_customers)
    metrics[2].metric("Total refund", str(session.summary.refund_sum))
    metrics[3].metric("Flagged cells", session.flagged_count())
    for warning in session.warnings:
        st.warning(warning)

    purchases_tab, review_tab, summary_tab, customers_tab = st.tabs(
        ["Purchases", "Review", "Summary statistics", "Customer statistics"]
    )

    with purchases_tab:
        read_only = [
            column
            for column in session.columns
            if session.mapping.role_for(column) in (None, *DERIVED_ROLES)
        ]
        edited = st.data_editor(
            editable_frame(session),
            width="stretch",
            hide_index=True,
            disabled=read_only,
            key=f"editor_{st.session_state['loaded_name']}",
        )
        if st.button("Recalculate", type="primary"):
            errors = apply_edits(session, edited)
            st.session_state["messages"] = errors
            st.rerun()

    with review_tab:
        render_legend()
        st.dataframe(highlighted_view(session), width="stretch", hide_index=True)

    with summary_tab:
        render_stats(session.summary.rows())

    with customers_tab:
        render_stats(session.customers.rows())

    stem = Path(session.source_name or "orders").stem
    downloads = st.columns(3)
    downloads[0].download_button(
        "Download purchases CSV",
        data=session.purchases_csv().encode("utf-8"),
        file_name=f"{stem}-refunds.csv",
        mime="text/csv",
        width="stretch",
    )
    downloads[1].download_button(
        "Download statistics CSV",
        data=session.stats_csv().encode("utf-8"),
        file_name=f"{stem}-stats.csv",
        mime="text/csv",
        width="stretch",
    )
    downloads[2].download_button(
        "Download highlighted workbook",
        data=session.workbook_bytes(),
        file_name=f"{stem}-refunds.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        width="stretch",
    )


if __name__ == "__main__":
    main()
