"""Structural fact extraction and documentation impact analysis for Spring codebases."""

__version__ = "0.1.0"
