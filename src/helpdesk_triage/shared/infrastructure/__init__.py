"""
Infrastructure Layer
=====================

Low-level technical concerns:
- Structured JSON logging
- YAML configuration sources with hot reload
"""
