"""Utility functions for visadesk."""

from visadesk.utils.date_parser import parse_date, start_of_day, end_of_day
from visadesk.utils.amount_parser import parse_amount

__all__ = ["parse_date", "start_of_day", "end_of_day", "parse_amount"]
