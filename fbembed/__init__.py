"""Locate and package Firebird embedded native assets."""

__version__ = "1.0.0"
