"""
Phin Cafe Reports - Square POS reporting backend.

Aggregates Square payments, refunds, orders and labor shifts across every
store location and serves the results as JSON for the reports dashboard.
"""

__version__ = "1.0.0"
