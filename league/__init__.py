"""Rating and elimination tournament layer."""

__all__ = ["rating", "tournament"]
