"""SQLite persistence for recipes, the master list and weekly shopping lists."""
