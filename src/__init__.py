# src/__init__.py — v1
"""fsingest: resumable file tree crawler feeding a bulk document store."""

__version__ = "0.1.0"
