"""
Pytest configuration for the Intcode test suite.

    python -m pytest                 # full suite
    python -m pytest -m "not slow"   # skip exhaustive phase searches
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers",
        "slow: exhaustive searches over phase permutations")


# Prints its own program image (exercises relative mode and tape growth)
QUINE = [109, 1, 204, -1, 1001, 100, 1, 100, 1008, 100, 16, 101,
         1006, 101, 0, 99]

# Compares input against 8: outputs 999 below, 1000 equal, 1001 above
CMP8 = [3, 21, 1008, 21, 8, 20, 1005, 20, 22, 107, 8, 21, 20, 1006, 20, 31,
        1106, 0, 36, 98, 0, 0, 1002, 21, 125, 20, 4, 20, 1105, 1, 46, 104,
        999, 1105, 1, 46, 1101, 1000, 1, 20, 4, 20, 1105, 1, 46, 98, 99]


@pytest.fixture
def quine_program():
    return list(QUINE)


@pytest.fixture
def cmp8_program():
    return list(CMP8)


@pytest.fixture
def program_file(tmp_path):
    """Write a program to a temp file; returns a factory taking the words."""
    def _write(words, name="prog.txt"):
        path = tmp_path / name
        path.write_text(",".join(str(w) for w in words) + "\n")
        return str(path)
    return _write
