"""narratore - turn EPUB books into chaptered audiobooks."""

__version__ = "0.1.0"
