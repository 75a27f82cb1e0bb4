# src/checkpoint/__init__.py — v1
