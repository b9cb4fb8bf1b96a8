"""
FeedVine HTTP API
=================
"""

from .server import create_app, build_app, run_server

__all__ = ["create_app", "build_app", "run_server"]
