"""Portfolio risk classification and occupancy anomaly detection."""
