"""Photo album pipeline: upload validation, cataloging, notifications and metadata."""

__version__ = "0.1.0"
