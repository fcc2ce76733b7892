"""Buy planner: resolved supports in, sized and validated calls out."""

from .params import BuyParams
from .planner import BuyPlanner, Plan, distance_filter, select_levels

__all__ = ["BuyParams", "BuyPlanner", "Plan", "distance_filter", "select_levels"]
