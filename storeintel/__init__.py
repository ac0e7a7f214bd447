"""Store intelligence engine: demand forecasts, reorder advice and stock anomalies."""

__version__ = "0.3.0"
