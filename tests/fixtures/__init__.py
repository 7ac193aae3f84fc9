"""Shared testing fixtures for the quiz_runner test suite."""

from .banks import BankBuilder, FakeClock, make_question, make_record  # noqa: F401

__all__ = [
    "BankBuilder",
    "FakeClock",
    "make_question",
    "make_record",
]
