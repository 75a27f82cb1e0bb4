# src/crawler/__init__.py — v1
