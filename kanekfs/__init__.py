"""Bit maps, on-disk records and superblock checks for the Kanek graph file system."""

__version__ = "0.1.0"

__all__ = ["bitmap", "disk", "krand", "superblock", "text"]