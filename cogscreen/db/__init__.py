"""Database base classes, sessions and initialization."""
