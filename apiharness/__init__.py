"""Behaviour-driven API test harness for behave."""

__version__ = "0.1.0"
