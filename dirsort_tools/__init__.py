"""
dirsort-tools: physical directory entry re-sequencing.

Reorders the on-disk entry sequence of folders so that devices which list
directory entries in raw order (flash carts, MP3 players, firmware file
browsers) present them sorted.
"""

__version__ = "1.0.0"
