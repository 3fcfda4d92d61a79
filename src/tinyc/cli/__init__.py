"""
Tiny-C Command-Line Interface
=============================

- **tinyc**: compile and run Tiny-C programs, or list their bytecode

The tool is a Click-based CLI application; see `tinyc --help`.
"""

__all__ = ["tinyc"]
