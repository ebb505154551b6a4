"""Test helpers module for shared test utilities."""

from tests.helpers.constants import ALICE, BOB, CAROL, GENESIS, STARTING_BALANCE

__all__ = [
    "ALICE",
    "BOB",
    "CAROL",
    "GENESIS",
    "STARTING_BALANCE",
]
