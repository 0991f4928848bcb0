"""Web evidence search and KPI extraction."""
