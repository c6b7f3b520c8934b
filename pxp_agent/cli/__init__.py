"""PXP Agent command-line interface."""
