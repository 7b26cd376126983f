"""Stardelta: patch Scaleform SWF user interfaces from declarative mod files."""

__version__ = "2.1.2"
