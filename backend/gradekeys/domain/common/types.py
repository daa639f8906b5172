"""Shared value types used across domain sub-packages."""

from __future__ import annotations

from typing import Union

# A grade is whatever the boundary declares: 1..6, 0..15, "A", "N/A", ...
Grade = Union[int, str]
