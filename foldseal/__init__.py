"""FoldSeal: in-place file and folder encryption."""

__version__ = "1.0.0"
