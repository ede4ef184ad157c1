"""
REST API module for VBALoom.

Provides FastAPI endpoints for:
- Pipeline step metadata
- Single-step and full pipeline runs per module
- Human gap resolution
- Per-database pipeline status
"""
