# quantum_sim/dashboard/components/__init__.py

"""Dashboard components package."""

from quantum_sim.dashboard.components.charts import (
    create_timeline_chart,
    create_risk_gauge,
    create_confidence_bar,
    create_revenue_cost_chart,
)

from quantum_sim.dashboard.components.metrics import (
    render_kpi_row, render_scenario_card
)

__all__ = [
    'create_timeline_chart',
    'create_risk_gauge',
    'create_confidence_bar',
    'create_revenue_cost_chart',
    'render_kpi_row',
    'render_scenario_card',
]
