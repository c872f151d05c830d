"""Catalog search and statistics helpers."""

from .search import compute_category_stats, filter_by_category, search_facilities

__all__ = ["compute_category_stats", "filter_by_category", "search_facilities"]
