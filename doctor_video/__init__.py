"""Doctor video studio: composites a doctor's photo and name onto a base video."""

__version__ = "0.1.0"
