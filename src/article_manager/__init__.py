"""Article Manager - bookmarked articles with tags and AI book recommendations."""

__version__ = "1.0.0"
