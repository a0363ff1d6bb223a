# crm/dashboard/charts.py
"""
Altair Chart Builders for the CRM Dashboard

All visualization components using Altair:
- KPI summary cards (using st.metric)
- Daily sales trend (bar + line)
- Revenue by agent / team / service tier (horizontal bars)
- Deal status donut
- Callback performance lines
- Monthly revenue
"""

import logging
from typing import Dict, List

import altair as alt
import pandas as pd
import streamlit as st

from .aggregator import rows_to_frame
from .constants import (
    CHART_HEIGHT,
    CHART_WIDTH,
    COLORS,
    INVALID_DATE,
    PIE_CHART_HEIGHT,
    PIE_CHART_WIDTH,
    STATUS_COLORS,
)

logger = logging.getLogger(__name__)


class CRMCharts:
    """
    Chart builders for the CRM dashboard.

    All methods are static - can be called without instantiation.

    Usage:
        CRMCharts.render_kpi_cards(overview)
        chart = CRMCharts.build_sales_trend_chart(chart_data['salesTrend'])
        st.altair_chart(chart, use_container_width=True)
    """

    # =========================================================================
    # KPI CARDS (Using st.metric)
    # =========================================================================

    @staticmethod
    def render_kpi_cards(overview: Dict):
        """
        Render overview KPI cards.

        Layout:
        - 💰 SALES: Revenue, Deals, Avg Deal Size, Agents
        - 📅 ACTIVITY: Today, This Week, Callbacks, Conversion
        """
        with st.container(border=True):
            st.markdown("**💰 SALES**")
            col1, col2, col3, col4 = st.columns(4)
            with col1:
                st.metric("Revenue", f"${overview.get('total_revenue', 0):,.0f}",
                          help="Sum of deal amounts in the selected period")
            with col2:
                st.metric("Deals", f"{overview.get('total_deals', 0):,}",
                          delta=f"{overview.get('completed_deals', 0)} completed", delta_color="off")
            with col3:
                st.metric("Avg Deal Size", f"${overview.get('avg_deal_size', 0):,.0f}",
                          help="Revenue / Deals")
            with col4:
                st.metric("Agents", f"{overview.get('unique_agents', 0):,}")

        with st.container(border=True):
            st.markdown("**📅 ACTIVITY**")
            col1, col2, col3, col4 = st.columns(4)
            with col1:
                st.metric("Today", f"{overview.get('today_deals', 0)} deals",
                          delta=f"${overview.get('today_revenue', 0):,.0f}", delta_color="off")
            with col2:
                st.metric("This Week", f"{overview.get('week_deals', 0)} deals",
                          delta=f"${overview.get('week_revenue', 0):,.0f}", delta_color="off")
            with col3:
                st.metric("Callbacks", f"{overview.get('total_callbacks', 0):,}")
            with col4:
                st.metric("Conversion", f"{overview.get('conversion_rate', 0):.1f}%",
                          help="Completed callbacks / all callbacks")

    @staticmethod
    def render_callback_kpi_cards(kpis: Dict):
        col1, col2, col3, col4, col5 = st.columns(5)
        col1.metric("Total", f"{kpis.get('total_callbacks', 0):,}")
        col2.metric("⏳ Pending", f"{kpis.get('pending_callbacks', 0):,}")
        col3.metric("📞 Contacted", f"{kpis.get('contacted_callbacks', 0):,}")
        col4.metric("✅ Completed", f"{kpis.get('completed_callbacks', 0):,}")
        col5.metric("Conversion", f"{kpis.get('conversion_rate', 0):.1f}%")

    # =========================================================================
    # SALES TREND
    # =========================================================================

    @staticmethod
    def build_sales_trend_chart(
        trend_rows: List[Dict],
        title: str = "📈 Daily Revenue & Deals"
    ) -> alt.Chart:
        """
        Bars for daily revenue, line for deal count (independent Y scales).

        Rows with an unparseable date are not plotted.
        """
        df = rows_to_frame(trend_rows, ['date', 'deals', 'revenue'])
        if not df.empty:
            df = df[df['date'] != INVALID_DATE]
        if df.empty:
            return CRMCharts._empty_chart("No sales in this period")

        bars = alt.Chart(df).mark_bar(color=COLORS['revenue'], opacity=0.8).encode(
            x=alt.X('date:T', title='Date'),
            y=alt.Y('revenue:Q', title='Revenue (USD)', axis=alt.Axis(format='~s')),
            tooltip=[
                alt.Tooltip('date:T', title='Date'),
                alt.Tooltip('revenue:Q', title='Revenue', format=',.0f'),
                alt.Tooltip('deals:Q', title='Deals'),
            ]
        )

        line = alt.Chart(df).mark_line(
            point=True,
            color=COLORS['deals'],
            strokeWidth=2
        ).encode(
            x=alt.X('date:T'),
            y=alt.Y('deals:Q', title='Deals'),
        )

        return alt.layer(bars, line).resolve_scale(
            y='independent'
        ).properties(
            width=CHART_WIDTH,
            height=CHART_HEIGHT,
            title=title
        )

    # =========================================================================
    # BREAKDOWNS
    # =========================================================================

    @staticmethod
    def build_revenue_bar_chart(
        rows: List[Dict],
        label_field: str,
        label_title: str,
        title: str = "",
        color: str = None
    ) -> alt.Chart:
        """
        Horizontal revenue bars with deal counts in the tooltip.

        Args:
            rows: Aggregator rows (label_field, deals, revenue)
            label_field: 'agent', 'team' or 'service'
        """
        df = rows_to_frame(rows, [label_field, 'deals', 'revenue'])
        if df.empty:
            return CRMCharts._empty_chart("No data available")

        bars = alt.Chart(df).mark_bar(color=color or COLORS['revenue']).encode(
            y=alt.Y(f'{label_field}:N', sort='-x', title=label_title),
            x=alt.X('revenue:Q', title='Revenue (USD)', axis=alt.Axis(format='~s')),
            tooltip=[
                alt.Tooltip(f'{label_field}:N', title=label_title),
                alt.Tooltip('revenue:Q', title='Revenue', format=',.0f'),
                alt.Tooltip('deals:Q', title='Deals'),
            ]
        )

        text = alt.Chart(df).mark_text(
            align='left', baseline='middle', dx=3, fontSize=10
        ).encode(
            y=alt.Y(f'{label_field}:N', sort='-x'),
            x=alt.X('revenue:Q'),
            text=alt.Text('revenue:Q', format=',.0f'),
            color=alt.value(COLORS['text_dark'])
        )

        return alt.layer(bars, text).properties(
            width=CHART_WIDTH,
            height=max(CHART_HEIGHT // 2, 28 * len(df)),
            title=title
        )

    @staticmethod
    def build_status_donut(
        status_rows: List[Dict],
        title: str = "🍩 Deal Status"
    ) -> alt.Chart:
        df = rows_to_frame(status_rows, ['status', 'count', 'percentage'])
        if df.empty:
            return CRMCharts._empty_chart("No data available")

        domain = list(df['status'])
        colors = [STATUS_COLORS.get(s, COLORS['text_light']) for s in domain]

        return alt.Chart(df).mark_arc(innerRadius=60).encode(
            theta=alt.Theta('count:Q'),
            color=alt.Color('status:N', scale=alt.Scale(domain=domain, range=colors),
                            legend=alt.Legend(orient='bottom', title=None)),
            tooltip=[
                alt.Tooltip('status:N', title='Status'),
                alt.Tooltip('count:Q', title='Deals'),
                alt.Tooltip('percentage:Q', title='%'),
            ]
        ).properties(
            width=PIE_CHART_WIDTH,
            height=PIE_CHART_HEIGHT,
            title=title
        )

    # =========================================================================
    # CALLBACKS
    # =========================================================================

    @staticmethod
    def build_callback_performance_chart(
        perf_rows: List[Dict],
        title: str = "📞 Callback Performance"
    ) -> alt.Chart:
        """Total / completed / pending callbacks per day."""
        df = rows_to_frame(perf_rows, ['date', 'total', 'completed', 'pending', 'conversion_rate'])
        if not df.empty:
            df = df[df['date'] != INVALID_DATE]
        if df.empty:
            return CRMCharts._empty_chart("No callbacks in this period")

        long_df = df.melt(
            id_vars=['date'],
            value_vars=['total', 'completed', 'pending'],
            var_name='Metric',
            value_name='Callbacks'
        )
        long_df['Metric'] = long_df['Metric'].str.title()

        color_scale = alt.Scale(
            domain=['Total', 'Completed', 'Pending'],
            range=[COLORS['callbacks'], COLORS['completed'], COLORS['pending']]
        )

        return alt.Chart(long_df).mark_line(point=True, strokeWidth=2).encode(
            x=alt.X('date:T', title='Date'),
            y=alt.Y('Callbacks:Q', title='Callbacks'),
            color=alt.Color('Metric:N', scale=color_scale, legend=alt.Legend(orient='bottom')),
            tooltip=[
                alt.Tooltip('date:T', title='Date'),
                alt.Tooltip('Metric:N'),
                alt.Tooltip('Callbacks:Q'),
            ]
        ).properties(
            width=CHART_WIDTH,
            height=CHART_HEIGHT,
            title=title
        )

    # =========================================================================
    # MONTHLY
    # =========================================================================

    @staticmethod
    def build_monthly_revenue_chart(
        monthly_rows: List[Dict],
        title: str = "📊 Monthly Revenue"
    ) -> alt.Chart:
        df = rows_to_frame(monthly_rows, ['month', 'deals', 'revenue'])
        if df.empty:
            return CRMCharts._empty_chart("No data available")

        bars = alt.Chart(df).mark_bar(color=COLORS['revenue']).encode(
            x=alt.X('month:O', title='Month'),
            y=alt.Y('revenue:Q', title='Revenue (USD)', axis=alt.Axis(format='~s')),
            tooltip=[
                alt.Tooltip('month:O', title='Month'),
                alt.Tooltip('revenue:Q', title='Revenue', format=',.0f'),
                alt.Tooltip('deals:Q', title='Deals'),
            ]
        )

        bar_text = alt.Chart(df).mark_text(
            align='center', baseline='bottom', dy=-5, fontSize=10
        ).encode(
            x=alt.X('month:O'),
            y=alt.Y('revenue:Q'),
            text=alt.Text('revenue:Q', format=',.0f'),
            color=alt.value(COLORS['text_dark'])
        )

        return alt.layer(bars, bar_text).properties(
            width=CHART_WIDTH,
            height=CHART_HEIGHT,
            title=title
        )

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    @staticmethod
    def _empty_chart(message: str = "No data available") -> alt.Chart:
        """Create an empty chart with a message."""
        return alt.Chart(pd.DataFrame({'note': [message]})).mark_text(
            text=message,
            fontSize=16,
            color=COLORS['text_light']
        ).properties(
            width=CHART_WIDTH,
            height=200
        )


__all__ = ['CRMCharts']
