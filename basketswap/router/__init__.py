from .selector import AggregatorSelector, SourceOutcome, choose_best_quote, failure_for

__all__ = ["AggregatorSelector", "SourceOutcome", "choose_best_quote", "failure_for"]
