"""
FYW Pay - Final Year Week registration and payment reconciliation backend
"""

__version__ = "0.1.0"
