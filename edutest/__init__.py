"""edutest: content-grounded test generation and grading backend."""

__version__ = "0.1.0"
