"""HTTP surface for the memory engine."""
