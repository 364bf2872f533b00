"""Plotly visualisation helpers for the finance manager.

Each function accepts the plain values returned by :mod:`aggregation`
and produces an interactive Plotly figure that Streamlit renders via
``st.plotly_chart``.  Empty inputs produce an empty figure titled
"No data to display" rather than raising.
"""

from __future__ import annotations

from typing import Dict, Sequence, Tuple

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

try:
    from .models import MonthlySaving
except ImportError:  # pragma: no cover - fallback for direct execution
    from models import MonthlySaving


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_category_pie_chart(breakdown: Dict[str, float], title: str | None = None) -> go.Figure:
    """Generate a donut chart of spending per category.

    Parameters
    ----------
    breakdown : dict
        Mapping of category to total amount, as returned by
        :func:`aggregation.category_breakdown`.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Pie chart with one slice per category present in ``breakdown``.
    """
    if not breakdown:
        return _empty_figure()
    df = pd.DataFrame(
        [(category, round(total, 2)) for category, total in breakdown.items()],
        columns=["Category", "Amount"],
    )
    fig = px.pie(df, names="Category", values="Amount", hole=0.45)
    fig.update_layout(title=title or "Expense Breakdown")
    return fig


def create_monthly_trend_chart(trend: Sequence[Tuple[str, float]], title: str | None = None) -> go.Figure:
    """Bar chart of total spending per month.

    Parameters
    ----------
    trend : sequence of (label, total)
        Chronological month totals from :func:`aggregation.monthly_trend`.
    title : str, optional
        Chart title.
    """
    if not trend:
        return _empty_figure()
    df = pd.DataFrame(list(trend), columns=["Month", "Amount"])
    fig = px.bar(df, x="Month", y="Amount")
    fig.update_layout(
        title=title or "Monthly Spending Trend",
        xaxis_title="Month",
        yaxis_title="Amount",
    )
    return fig


def create_savings_history_chart(history: Sequence[MonthlySaving], title: str | None = None) -> go.Figure:
    """Grouped bars of spent vs. saved for each snapshot, oldest first."""
    if not history:
        return _empty_figure()
    df = pd.DataFrame(
        [{"Month": s.month, "Spent": s.expenses, "Saved": s.saved} for s in history]
    ).sort_values("Month")
    fig = go.Figure()
    fig.add_trace(go.Bar(name="Spent", x=df["Month"], y=df["Spent"]))
    fig.add_trace(go.Bar(name="Saved", x=df["Month"], y=df["Saved"]))
    fig.update_layout(
        title=title or "Savings History",
        barmode="group",
        xaxis_title="Month",
        yaxis_title="Amount",
    )
    return fig
