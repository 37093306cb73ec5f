"""TreeChord: rhythm-tree to VexFlow notation converter."""

__version__ = "0.1.0"
