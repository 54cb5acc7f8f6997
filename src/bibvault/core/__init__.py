"""Core parsing and synchronization layers, free of any presentation code."""

from __future__ import annotations
