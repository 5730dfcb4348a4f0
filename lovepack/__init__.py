"""lovepack: package LÖVE games for the web."""

__version__ = "0.1.0"
