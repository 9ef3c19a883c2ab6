"""CineGenius: structured film-script analysis backed by Gemini."""

__version__ = "0.1.0"
