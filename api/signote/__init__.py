"""Signal Notes - meeting notes in, ranked action items out."""

__version__ = "0.1.0"
