from .filter_helper import apply_filters_and_sorting, paginate

__all__ = ["apply_filters_and_sorting", "paginate"]
