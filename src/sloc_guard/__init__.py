"""Line-count and directory-structure policy checks for source trees."""

from __future__ import annotations

__version__ = "0.4.0"
