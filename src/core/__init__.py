"""Core relay package for ferry.

Core contains event parsing, formatting, and correlation logic without any
HTTP or platform client code, keeping the relay testable with fakes.
"""
