"""
Intcode Virtual Machine
========================
A fetch/decode/execute interpreter for Intcode programs: flat sequences of
signed integers where each instruction word packs a two-digit opcode and
one addressing-mode digit per parameter.

    instruction word  =  ... C B A O O
                               | | | +-+-- opcode (low two decimal digits)
                               | | +------ mode of parameter 1
                               | +-------- mode of parameter 2
                               +---------- mode of parameter 3

Memory is a growable tape that reads as zero past its extent.  Execution
suspends cooperatively when an Input instruction finds its port empty; the
driver feeds more values and calls run() again.

Usage:
    from intcode import IntcodeVM, VmState
    vm = IntcodeVM([3, 0, 4, 0, 99])
    vm.feed(7)
    assert vm.run() is VmState.TERMINATED
    assert vm.drain() == [7]
"""

from __future__ import annotations
from enum import Enum, IntEnum
from typing import Callable, Iterable, Optional

# Error hierarchy, re-exported for callers
from errors import (
    IntcodeError, DecodeError, AddressError, InputUnderflow, HaltError,
)
from ports import InputSource, OutputSink, QueuePort

# ---------------------------------------------------------------------------
#  Memory tape
# ---------------------------------------------------------------------------

class Tape:
    """Growable integer store.

    Any address not yet written reads as 0.  Writes past the current extent
    zero-fill the gap first.  The tape never shrinks, and reads never grow it.
    """

    def __init__(self, data: Iterable[int] = ()):
        self.data: list[int] = list(data)

    def __len__(self) -> int:
        return len(self.data)

    def get(self, addr: int) -> int:
        if addr < 0:
            raise AddressError(addr)
        if addr >= len(self.data):
            return 0
        return self.data[addr]

    def set(self, addr: int, value: int):
        if addr < 0:
            raise AddressError(addr)
        if addr >= len(self.data):
            self.data.extend([0] * (addr + 1 - len(self.data)))
        self.data[addr] = value

    def snapshot(self) -> list[int]:
        return list(self.data)


# ---------------------------------------------------------------------------
#  Decoder
# ---------------------------------------------------------------------------

class ParamMode(IntEnum):
    POSITION  = 0
    IMMEDIATE = 1
    RELATIVE  = 2

    @classmethod
    def read(cls, instruction: int, param_num: int) -> ParamMode:
        """Mode digit for *param_num* (1-based) of an instruction word."""
        digit = (instruction // 10 ** (param_num + 1)) % 10
        try:
            return cls(digit)
        except ValueError:
            raise DecodeError(
                f"Unrecognized parameter mode digit {digit} for parameter "
                f"{param_num} of instruction {instruction}",
                instruction) from None


class ParamType(Enum):
    READ  = "read"
    WRITE = "write"


class OpCode(IntEnum):
    ADD                  = 1
    MUL                  = 2
    INPUT                = 3
    OUTPUT               = 4
    JUMP_IF_TRUE         = 5
    JUMP_IF_FALSE        = 6
    LESS_THAN            = 7
    EQUALS               = 8
    ADJUST_RELATIVE_BASE = 9
    TERMINATE            = 99

    @classmethod
    def read(cls, instruction: int, address: int = 0) -> OpCode:
        if instruction < 0:
            raise DecodeError(f"Unknown opcode: {instruction}", instruction, address)
        try:
            return cls(instruction % 100)
        except ValueError:
            raise DecodeError(f"Unknown opcode: {instruction}",
                              instruction, address) from None

    @property
    def arity(self) -> int:
        return len(_PARAM_TYPES[self])

    def param_type(self, param_num: int) -> ParamType:
        types = _PARAM_TYPES[self]
        if not 1 <= param_num <= len(types):
            raise DecodeError(
                f"Invalid param number {param_num} for op code {self.name}")
        return types[param_num - 1]


_R, _W = ParamType.READ, ParamType.WRITE

_PARAM_TYPES: dict[OpCode, tuple[ParamType, ...]] = {
    OpCode.ADD:                  (_R, _R, _W),
    OpCode.MUL:                  (_R, _R, _W),
    OpCode.INPUT:                (_W,),
    OpCode.OUTPUT:               (_R,),
    OpCode.JUMP_IF_TRUE:         (_R, _R),
    OpCode.JUMP_IF_FALSE:        (_R, _R),
    OpCode.LESS_THAN:            (_R, _R, _W),
    OpCode.EQUALS:               (_R, _R, _W),
    OpCode.ADJUST_RELATIVE_BASE: (_R,),
    OpCode.TERMINATE:            (),
}


# ---------------------------------------------------------------------------
#  Program text
# ---------------------------------------------------------------------------

def parse_program(text: str) -> list[int]:
    """Parse comma-separated signed decimal integers."""
    text = text.strip()
    if not text:
        return []
    program = []
    for i, field in enumerate(text.split(",")):
        field = field.strip()
        if not field:
            raise ValueError(f"Empty program field at position {i}")
        program.append(int(field))
    return program

def load_program(path: str) -> list[int]:
    with open(path, "r") as f:
        return parse_program(f.read())


# ---------------------------------------------------------------------------
#  VM
# ---------------------------------------------------------------------------

class VmState(Enum):
    NOT_STARTED    = "not-started"
    RUNNING        = "running"
    WAIT_FOR_INPUT = "wait-for-input"
    TERMINATED     = "terminated"


class IntcodeVM:
    """Intcode interpreter with explicit suspend/resume."""

    def __init__(self, program: Iterable[int],
                 input_source: Optional[InputSource] = None,
                 output_sink: Optional[OutputSink] = None):
        self.tape = Tape(program)
        self.ip: int = 0
        self.relative_base: int = 0
        self.state: VmState = VmState.NOT_STARTED
        self.step_count: int = 0

        self.input_source = input_source if input_source is not None else QueuePort()
        self.output_sink = output_sink if output_sink is not None else QueuePort()

        # Callbacks
        self.on_output: Optional[Callable[[int], None]] = None
        self.on_halt: Optional[Callable[[], None]] = None

    @classmethod
    def from_file(cls, path: str, **kwargs) -> IntcodeVM:
        return cls(load_program(path), **kwargs)

    # -- State queries --

    @property
    def terminated(self) -> bool:
        return self.state is VmState.TERMINATED

    @property
    def waiting(self) -> bool:
        return self.state is VmState.WAIT_FOR_INPUT

    # -- Driver access --

    def peek(self, addr: int) -> int:
        return self.tape.get(addr)

    def poke(self, addr: int, value: int):
        self.tape.set(addr, value)

    def feed(self, *values: int):
        """Push values onto the input port."""
        for v in values:
            self.input_source.push(v)

    def drain(self) -> list[int]:
        """Pop every pending output value (queue-backed sinks only)."""
        drain = getattr(self.output_sink, "drain", None)
        if drain is None:
            raise TypeError(
                f"{type(self.output_sink).__name__} does not buffer output")
        return drain()

    # -- Addressing --

    def get_param_address(self, param_num: int) -> int:
        """Effective address of parameter *param_num* of the current instruction.

        Position reads the operand as an address, Immediate uses the operand's
        own slot, Relative adds the operand to the relative base.
        """
        instruction = self.tape.get(self.ip)
        op = OpCode.read(instruction, self.ip)
        param_type = op.param_type(param_num)
        param_pointer = self.ip + param_num
        mode = ParamMode.read(instruction, param_num)

        if mode is ParamMode.POSITION:
            address = self.tape.get(param_pointer)
        elif mode is ParamMode.IMMEDIATE:
            if param_type is ParamType.WRITE:
                raise DecodeError(
                    f"Write parameter {param_num} must not be in immediate "
                    f"mode for instruction: {instruction}",
                    instruction, self.ip)
            return param_pointer
        else:
            address = self.tape.get(param_pointer) + self.relative_base

        if address < 0:
            raise AddressError(address)
        return address

    def _read(self, param_num: int) -> int:
        return self.tape.get(self.get_param_address(param_num))

    def _write(self, param_num: int, value: int):
        self.tape.set(self.get_param_address(param_num), value)

    # =====================================================================
    #  STEP: the core decode/execute loop
    # =====================================================================

    def step(self) -> VmState:
        """Execute one instruction.  Returns the resulting state."""
        if self.state is VmState.TERMINATED:
            raise HaltError("VM has terminated")
        self.state = VmState.RUNNING

        op = OpCode.read(self.tape.get(self.ip), self.ip)
        # Sole suspension point: the instruction is left unconsumed so the
        # next step re-decodes it from scratch.
        if op is OpCode.INPUT and len(self.input_source) == 0:
            self.state = VmState.WAIT_FOR_INPUT
            return self.state

        new_ip = self._execute(op)
        self.step_count += 1
        if new_ip is None:
            self.state = VmState.TERMINATED
            if self.on_halt:
                self.on_halt()
        else:
            self.ip = new_ip
        return self.state

    def _execute(self, op: OpCode) -> Optional[int]:
        """Apply *op*'s effect.  Returns the next ip, or None on Terminate."""
        if op is OpCode.ADD:
            self._write(3, self._read(1) + self._read(2))
        elif op is OpCode.MUL:
            self._write(3, self._read(1) * self._read(2))
        elif op is OpCode.INPUT:
            self._write(1, self.input_source.pop())
        elif op is OpCode.OUTPUT:
            value = self._read(1)
            self.output_sink.push(value)
            if self.on_output:
                self.on_output(value)
        elif op is OpCode.JUMP_IF_TRUE:
            if self._read(1) != 0:
                return self._jump_target(self._read(2))
        elif op is OpCode.JUMP_IF_FALSE:
            if self._read(1) == 0:
                return self._jump_target(self._read(2))
        elif op is OpCode.LESS_THAN:
            self._write(3, 1 if self._read(1) < self._read(2) else 0)
        elif op is OpCode.EQUALS:
            self._write(3, 1 if self._read(1) == self._read(2) else 0)
        elif op is OpCode.ADJUST_RELATIVE_BASE:
            new_base = self.relative_base + self._read(1)
            if new_base < 0:
                raise AddressError(new_base,
                                   f"Invalid new relative base: {new_base}")
            self.relative_base = new_base
        elif op is OpCode.TERMINATE:
            return None
        return self.ip + 1 + op.arity

    @staticmethod
    def _jump_target(value: int) -> int:
        if value < 0:
            raise AddressError(value, f"Cannot jump to negative address {value}")
        return value

    # -- Run loop --

    def run(self, max_steps: Optional[int] = None) -> VmState:
        """Step until WAIT_FOR_INPUT or TERMINATED.

        With *max_steps*, stop once that many instructions have executed and
        return the state as it stands (RUNNING, or unchanged if the bound
        is 0).
        """
        steps = 0
        while max_steps is None or steps < max_steps:
            state = self.step()
            if state is not VmState.RUNNING:
                return state
            steps += 1
        return self.state

    # -- Debug / introspection --

    def dump_regs(self) -> str:
        lines = [
            f"  IP    = {self.ip}",
            f"  RB    = {self.relative_base}",
            f"  STATE = {self.state.value}",
            f"  STEPS = {self.step_count}",
            f"  TAPE  = {len(self.tape)} cells",
            f"  IN    = {len(self.input_source)} pending",
        ]
        return "\n".join(lines)
