"""
Intcode Pipelines
==================
Drivers that compose several independent VMs by forwarding one VM's output
into the next VM's input.  The VMs share nothing; this module does all the
scheduling, round-robin, one run() per VM per round.

  run_chain          open chain: each stage runs to completion in turn
  run_feedback_loop  ring: the last stage feeds the first until it halts
  optimize_phases    try every ordering of the phase settings
"""

from __future__ import annotations
from itertools import permutations
from typing import Callable, Sequence

from intcode import IntcodeError, IntcodeVM, VmState


class PipelineError(IntcodeError):
    pass


Circuit = Callable[[Sequence[int], Sequence[int], int], int]


def _make_stages(program: Sequence[int], phases: Sequence[int]) -> list[IntcodeVM]:
    if not phases:
        raise ValueError("At least one phase setting is required")
    stages = []
    for phase in phases:
        vm = IntcodeVM(program)
        vm.feed(phase)
        stages.append(vm)
    return stages


def run_chain(program: Sequence[int], phases: Sequence[int],
              signal: int = 0) -> int:
    """Run one VM per phase in series; return the last stage's output."""
    for i, vm in enumerate(_make_stages(program, phases)):
        vm.feed(signal)
        state = vm.run()
        if state is not VmState.TERMINATED:
            raise PipelineError(f"Stage {i} stalled waiting for input")
        out = vm.drain()
        if not out:
            raise PipelineError(f"Stage {i} produced no output")
        signal = out[-1]
    return signal


def run_feedback_loop(program: Sequence[int], phases: Sequence[int],
                      signal: int = 0) -> int:
    """Run VMs wired in a ring until the last one terminates.

    Returns the last value the final stage emitted.  A full round in which
    no stage emits anything, with the ring not yet done, is a deadlock.
    """
    stages = _make_stages(program, phases)
    in_flight = [signal]
    last_signal = None

    while True:
        emitted = False
        for i, vm in enumerate(stages):
            if vm.terminated:
                if in_flight:
                    raise PipelineError(
                        f"Stage {i} terminated with {len(in_flight)} "
                        f"value(s) still in flight")
                continue
            vm.feed(*in_flight)
            vm.run()
            in_flight = vm.drain()
            if in_flight:
                emitted = True
                if i == len(stages) - 1:
                    last_signal = in_flight[-1]

        if stages[-1].terminated:
            if last_signal is None:
                raise PipelineError("Final stage terminated without output")
            return last_signal
        if not emitted:
            raise PipelineError("Feedback loop deadlocked: every stage is "
                                "waiting for input")


def optimize_phases(program: Sequence[int], phases: Sequence[int],
                    circuit: Circuit = run_chain) -> tuple[int, list[int]]:
    """Exhaustive search over orderings of *phases*.

    Returns (best_signal, best_ordering); the first ordering wins ties.
    """
    best_signal = None
    best_phases: list[int] = []
    for ordering in permutations(phases):
        out = circuit(program, ordering, 0)
        if best_signal is None or out > best_signal:
            best_signal = out
            best_phases = list(ordering)
    if best_signal is None:
        raise ValueError("At least one phase setting is required")
    return best_signal, best_phases
