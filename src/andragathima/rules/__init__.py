"""Game rules: configuration tables, actor models and derived-stat systems."""
