"""SQLModel models package."""

from .author import Author
from .cheep import Cheep

__all__ = ["Author", "Cheep"]
