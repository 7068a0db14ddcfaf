"""Cleanup of old Obsidian daily notes.

Removes ```button blocks, ```tasks queries and empty headings from notes whose
filename date is older than a configurable number of days.
"""

__version__ = "0.1.0"
