"""Release assembler: component resolution, boot scripts and upgrade plans."""

__version__ = "0.1.0"
