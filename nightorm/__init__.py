"""A small PostgreSQL ORM for dataclass models, with a parameterised SQL query builder."""

__version__ = "0.1.0"

__all__ = ["core", "postgres", "query_builder", "reflection"]