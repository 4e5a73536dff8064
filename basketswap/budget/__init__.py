from .allocator import compute_budgets, filter_dust, portfolio_value
from .planner import compute_deposit, compute_withdrawal

__all__ = ["compute_budgets", "compute_deposit", "compute_withdrawal", "filter_dust", "portfolio_value"]
