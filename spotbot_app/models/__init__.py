"""
Data models shared by the venue layer, planner and sell engine.

Venue-reported data (markets, orders, stats) is immutable; planned orders
(calls) are mutated in place by the planner before submission.
"""
