"""GitBlog: local-first blog editor backend publishing to GitHub Pages."""

__version__ = "0.1.0"
