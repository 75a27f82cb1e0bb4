# src/bulk/__init__.py — v1
