"""GTD task management on top of org-mode outline files."""

__version__ = "0.1.0"
