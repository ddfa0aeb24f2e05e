"""
Mealcart weekly shopping list package.

The package turns a week's meal plan into a persisted shopping list, filtering out
ingredients already covered by the household staple/restock master list.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
