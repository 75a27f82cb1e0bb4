# src/fileabstraction/__init__.py — v1
