"""Dimos bridge — exposes remote MCP tools to a host agent framework."""

from __future__ import annotations

__version__ = "0.1.0"
