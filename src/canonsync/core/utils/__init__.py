"""Shared utilities for canonsync core."""
from __future__ import annotations
