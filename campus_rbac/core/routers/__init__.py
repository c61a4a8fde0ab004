from .read import read_item
from .filter import filter_items as filter

__all__ = ["read_item", "filter"]
