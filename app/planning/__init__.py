"""Sprint planning: KPI computation and AI sprint analysis."""
