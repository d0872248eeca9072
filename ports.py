"""
Intcode I/O Ports
==================
Pluggable endpoints for the Input and Output opcodes.

Port hierarchy:
  InputSource          abstract: pop() + len()
  OutputSink           abstract: push()
  QueuePort            FIFO deque, both a source and a sink
  ConsoleOutputSink    sink that prints each value as it arrives

The VM only ever talks to these two capability sets; drivers pick the
concrete variant at construction time and reach into it between run()
calls to push input or drain output.

Usage:
  from ports import QueuePort, ConsoleOutputSink
  vm = IntcodeVM(program, input_source=QueuePort([1]),
                 output_sink=ConsoleOutputSink())
"""

from __future__ import annotations

import abc
import sys
from collections import deque
from typing import Iterable, Iterator, Optional, TextIO

from errors import InputUnderflow


class InputSource(abc.ABC):
    """Where the Input opcode draws values from."""

    @abc.abstractmethod
    def pop(self) -> int:
        """Remove and return the oldest pending value."""

    @abc.abstractmethod
    def __len__(self) -> int:
        """Number of values currently pending."""

    def push(self, value: int):
        raise TypeError(f"{type(self).__name__} does not accept values")


class OutputSink(abc.ABC):
    """Where the Output opcode sends values to."""

    @abc.abstractmethod
    def push(self, value: int):
        """Accept one emitted value."""


class QueuePort(InputSource, OutputSink):
    """FIFO queue: an input port, an output port, or the wire between two VMs."""

    def __init__(self, values: Iterable[int] = ()):
        self.queue: deque[int] = deque(values)

    def pop(self) -> int:
        if not self.queue:
            raise InputUnderflow("Input queue is empty")
        return self.queue.popleft()

    def push(self, value: int):
        self.queue.append(value)

    def extend(self, values: Iterable[int]):
        self.queue.extend(values)

    def drain(self) -> list[int]:
        """Return all pending values and clear the queue."""
        out = list(self.queue)
        self.queue.clear()
        return out

    def __len__(self) -> int:
        return len(self.queue)

    def __iter__(self) -> Iterator[int]:
        return iter(self.queue)

    def __repr__(self) -> str:
        return f"QueuePort({list(self.queue)!r})"


class ConsoleOutputSink(OutputSink):
    """Unbuffered sink: prints every value on its own line as it arrives."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def push(self, value: int):
        print(value, file=self.stream or sys.stdout, flush=True)
