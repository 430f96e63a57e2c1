"""Multi-account equity portfolio tracker with average-cost accounting."""
