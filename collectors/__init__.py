"""Per-source cleaners for the coffee price datasets."""
