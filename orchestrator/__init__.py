"""
Companion Orchestrator

Message pipeline (quota gate → reply generation → per-segment speech and
lip-sync), the HTTP surface and the background sweeps.

Usage:
    uvicorn orchestrator.app:app --port 3000
"""

__version__ = "1.0.0"
