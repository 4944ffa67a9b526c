"""Command line interface for running behave suites with the harness."""

from __future__ import annotations

from apiharness.cli.parsing import build_behave_args, parse_define_parameter

__all__ = [
    "build_behave_args",
    "parse_define_parameter",
]
