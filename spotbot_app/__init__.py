"""
Spotbot - Unattended Multi-Venue Spot Trading Bot

Resolves order-book support levels into sized buy orders and manages the
follow-up sells, stops and OCO orders under selectable strategies, while
pacing every outbound request to stay inside each venue's rate limits.
"""

__version__ = "0.1.0"
__author__ = "Spotbot Team"
