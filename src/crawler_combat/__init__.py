"""Turn-based multi-wave combat core for a dungeon-crawler RPG."""

__version__ = "0.1.0"
