"""Command-line control for the 8-MOSFET expansion board stack."""

__version__ = "1.0.7"
