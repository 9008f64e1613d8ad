"""Options, access logging, text-mode listings, chunked reads and listeners for a file server."""

__version__ = "0.46.0"