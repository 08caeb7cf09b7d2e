"""Shift pay segmentation and pay-period withholding."""

__version__ = "1.0.0"
