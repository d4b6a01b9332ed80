from .outline import classify, parse_heading, render_heading

__all__ = ["classify", "parse_heading", "render_heading"]
