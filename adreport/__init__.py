"""Ad Report — marketing report data-shaping pipeline."""

__version__ = "0.1.0"
