"""
Pipeline driver tests: amplifier chains, feedback loops, phase search.
"""

import pytest

from intcode import IntcodeError
from pipeline import (
    PipelineError, optimize_phases, run_chain, run_feedback_loop,
)

CHAIN_A = [3, 15, 3, 16, 1002, 16, 10, 16, 1, 16, 15, 15, 4, 15, 99, 0, 0]
CHAIN_B = [3, 23, 3, 24, 1002, 24, 10, 24, 1002, 23, -1, 23, 101, 5, 23, 23,
           1, 24, 23, 23, 4, 23, 99, 0, 0]
CHAIN_C = [3, 31, 3, 32, 1002, 32, 10, 32, 1001, 31, -2, 31, 1007, 31, 0, 33,
           1002, 33, 7, 33, 1, 33, 31, 31, 1, 32, 31, 31, 4, 31, 99, 0, 0, 0]

FEEDBACK_A = [3, 26, 1001, 26, -4, 26, 3, 27, 1002, 27, 2, 27, 1, 27, 26, 27,
              4, 27, 1001, 28, -1, 28, 1005, 28, 6, 99, 0, 0, 5]
FEEDBACK_B = [3, 52, 1001, 52, -5, 52, 3, 53, 1, 52, 56, 54, 1007, 54, 5, 55,
              1005, 55, 26, 1001, 54, -5, 54, 1105, 1, 12, 1, 53, 54, 53, 1008,
              54, 0, 55, 1001, 55, 1, 55, 2, 53, 55, 53, 4, 53, 1001, 56, -1,
              56, 1005, 56, 6, 99, 0, 0, 0, 0, 10]


class TestChain:
    @pytest.mark.parametrize("program, phases, expected", [
        (CHAIN_A, [4, 3, 2, 1, 0], 43210),
        (CHAIN_B, [0, 1, 2, 3, 4], 54321),
        (CHAIN_C, [1, 0, 4, 3, 2], 65210),
    ])
    def test_known_settings(self, program, phases, expected):
        assert run_chain(program, phases) == expected

    def test_initial_signal(self):
        # each stage adds its phase to the signal
        adder = [3, 11, 3, 12, 1, 11, 12, 11, 4, 11, 99]
        assert run_chain(adder, [1, 2, 3], signal=10) == 16

    def test_stage_stalls(self):
        with pytest.raises(PipelineError, match="stalled"):
            run_chain([3, 0, 3, 0, 3, 0, 99], [0])

    def test_stage_without_output(self):
        with pytest.raises(PipelineError, match="no output"):
            run_chain([3, 0, 3, 0, 99], [0, 1])

    def test_no_phases(self):
        with pytest.raises(ValueError):
            run_chain(CHAIN_A, [])

    def test_program_is_not_mutated(self):
        program = list(CHAIN_A)
        run_chain(program, [4, 3, 2, 1, 0])
        assert program == CHAIN_A


class TestFeedbackLoop:
    def test_known_settings(self):
        assert run_feedback_loop(FEEDBACK_A, [9, 8, 7, 6, 5]) == 139629729
        assert run_feedback_loop(FEEDBACK_B, [9, 7, 8, 5, 6]) == 18216

    def test_open_chain_program_in_a_loop(self):
        # stages that terminate after one value make a single-round loop
        assert run_feedback_loop(CHAIN_A, [4, 3, 2, 1, 0]) == 43210

    def test_deadlock(self):
        with pytest.raises(PipelineError, match="deadlocked"):
            run_feedback_loop([3, 0, 3, 0, 3, 0, 99], [0])

    def test_silent_final_stage(self):
        with pytest.raises(PipelineError):
            run_feedback_loop([3, 0, 3, 0, 99], [0])

    def test_errors_are_intcode_errors(self):
        assert issubclass(PipelineError, IntcodeError)


class TestOptimize:
    def test_chain(self):
        best, phases = optimize_phases(CHAIN_A, [0, 1, 2, 3, 4])
        assert best == 43210
        assert phases == [4, 3, 2, 1, 0]

    def test_chain_b(self):
        assert optimize_phases(CHAIN_B, [0, 1, 2, 3, 4]) == \
            (54321, [0, 1, 2, 3, 4])

    @pytest.mark.slow
    def test_feedback(self):
        best, phases = optimize_phases(FEEDBACK_A, [5, 6, 7, 8, 9],
                                       run_feedback_loop)
        assert best == 139629729
        assert phases == [9, 8, 7, 6, 5]

    @pytest.mark.slow
    def test_feedback_b(self):
        assert optimize_phases(FEEDBACK_B, [5, 6, 7, 8, 9],
                               run_feedback_loop) == (18216, [9, 7, 8, 5, 6])

    def test_no_phases(self):
        with pytest.raises(ValueError):
            optimize_phases(CHAIN_A, [])
