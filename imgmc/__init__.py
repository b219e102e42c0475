"""imgmc: image generation and editing from the command line."""

__version__ = "0.1.0"
