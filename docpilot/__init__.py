"""Assemble numbered Markdown fragments into PDF, DOCX or HTML with pandoc."""

__version__ = "0.1.0"
