#!/usr/bin/env python3
"""
Intcode Runner / Monitor
=========================
Command-line front end for the Intcode VM.

Provides:
  - One-shot execution of a program file with queued input
  - Tape poking before the run (noun/verb, coin slots, ...)
  - Amplifier chains and feedback loops, with phase search
  - An interactive debug monitor: step / run / breakpoints /
    tape inspection and modification / disassembly

Usage:
  python cli.py PROGRAM [-i VALUES] [--poke ADDR=VALUE] [--trace]
                [--max-steps N] [--dump] [--run | --monitor]
  python cli.py PROGRAM --amplify 0,1,2,3,4 [--feedback] [--optimize]
"""

from __future__ import annotations
import argparse
import cmd
import shlex
import sys
from typing import Optional

from intcode import (
    IntcodeVM, IntcodeError, DecodeError, OpCode, ParamMode, Tape, VmState,
    load_program, parse_program,
)
from pipeline import optimize_phases, run_chain, run_feedback_loop
from ports import ConsoleOutputSink

# ---------------------------------------------------------------------------
#  Disassembler
# ---------------------------------------------------------------------------

MNEMONICS = {
    OpCode.ADD: "ADD", OpCode.MUL: "MUL", OpCode.INPUT: "IN",
    OpCode.OUTPUT: "OUT", OpCode.JUMP_IF_TRUE: "JNZ",
    OpCode.JUMP_IF_FALSE: "JZ", OpCode.LESS_THAN: "LT",
    OpCode.EQUALS: "EQ", OpCode.ADJUST_RELATIVE_BASE: "ARB",
    OpCode.TERMINATE: "HALT",
}


def _fmt_operand(mode: ParamMode, value: int) -> str:
    if mode is ParamMode.IMMEDIATE:
        return f"#{value}"
    if mode is ParamMode.RELATIVE:
        return f"rb{value:+d}"
    return str(value)


def disasm_one(tape: Tape, addr: int) -> tuple[str, int]:
    """Disassemble one instruction at `addr`. Returns (text, word_count).

    Words that do not decode are shown as DATA.
    """
    word = tape.get(addr)
    try:
        op = OpCode.read(word, addr)
        modes = [ParamMode.read(word, n) for n in range(1, op.arity + 1)]
    except DecodeError:
        return f"DATA {word}", 1

    operands = [_fmt_operand(mode, tape.get(addr + n))
                for n, mode in enumerate(modes, start=1)]
    text = MNEMONICS[op]
    if operands:
        text += " " + ", ".join(operands)
    return text, 1 + op.arity


def run_traced(vm: IntcodeVM, max_steps: Optional[int] = None,
               out=None) -> VmState:
    """Like vm.run(), printing each executed instruction first."""
    out = out or sys.stdout
    steps = 0
    while max_steps is None or steps < max_steps:
        addr = vm.ip
        text, _ = disasm_one(vm.tape, addr)
        state = vm.step()
        if state is VmState.WAIT_FOR_INPUT:
            return state
        print(f"  {addr:>6d}: {text}  (rb={vm.relative_base})", file=out)
        if state is VmState.TERMINATED:
            return state
        steps += 1
    return vm.state


# ---------------------------------------------------------------------------
#  Argument helpers
# ---------------------------------------------------------------------------

def parse_values(specs: list[str]) -> list[int]:
    """Flatten repeated comma-separated value lists: ['1', '2,3'] -> [1, 2, 3]."""
    values = []
    for spec in specs:
        values.extend(parse_program(spec))
    return values


def parse_poke(spec: str) -> tuple[int, int]:
    """Parse 'ADDR=VALUE'."""
    if "=" not in spec:
        raise ValueError(f"Expected ADDR=VALUE, got {spec!r}")
    addr_s, value_s = spec.split("=", 1)
    return int(addr_s, 0), int(value_s, 0)


# ---------------------------------------------------------------------------
#  Interactive monitor
# ---------------------------------------------------------------------------

class IntcodeCLI(cmd.Cmd):
    """Interactive Intcode debug monitor."""

    intro = ("Intcode Monitor. Type 'help' for commands, "
             "'quit' to exit.")
    prompt = "intcode> "

    def __init__(self, program: Optional[list[int]] = None, **kwargs):
        super().__init__(**kwargs)
        self.program: list[int] = list(program or [])
        self.breakpoints: set[int] = set()
        self.history: list[int] = []
        self.vm = self._new_vm()

    def _new_vm(self) -> IntcodeVM:
        vm = IntcodeVM(self.program)
        vm.on_halt = lambda: self._print("VM terminated.")
        return vm

    def _print(self, text: str):
        print(text, file=self.stdout)

    def _flush_output(self):
        """Move freshly emitted values into the history and echo them."""
        for value in self.vm.drain():
            self.history.append(value)
            self._print(f"  out: {value}")

    def _parse_int(self, s: str) -> int:
        return int(s.strip(), 0)

    def _check_live(self) -> bool:
        if self.vm.terminated:
            self._print("VM has terminated. Use 'reset' to start over.")
            return False
        return True

    # ================================================================
    #  Commands
    # ================================================================

    # -- Loading --

    def do_load(self, arg):
        """Load a program file and reset: load <file>"""
        parts = shlex.split(arg)
        if not parts:
            self._print("Usage: load <file>")
            return
        try:
            self.program = load_program(parts[0])
        except (OSError, ValueError) as e:
            self._print(f"Error: {e}")
            return
        self.do_reset("")
        self._print(f"Loaded {len(self.program)} words from '{parts[0]}'")

    def do_reset(self, arg):
        """Discard all VM state and reload the program image."""
        self.vm = self._new_vm()
        self.history.clear()
        self._print("VM reset.")

    # -- Execution --

    def do_step(self, arg):
        """Step N instructions: step [count]"""
        count = self._parse_int(arg) if arg.strip() else 1
        for _ in range(count):
            if not self._check_live():
                break
            addr = self.vm.ip
            text, _ = disasm_one(self.vm.tape, addr)
            try:
                state = self.vm.step()
            except IntcodeError as e:
                self._print(f"Fault at {addr}: {e}")
                break
            if state is VmState.WAIT_FOR_INPUT:
                self._print(f"  {addr:>6d}: {text}  (waiting for input)")
                break
            self._print(f"  {addr:>6d}: {text}")
            self._flush_output()

    def do_run(self, arg):
        """Run until input is needed, termination, or a breakpoint: run [max_steps]"""
        if not self._check_live():
            return
        max_steps = self._parse_int(arg) if arg.strip() else None
        steps = 0
        try:
            while max_steps is None or steps < max_steps:
                if steps and self.vm.ip in self.breakpoints:
                    self._print(f"Breakpoint hit at {self.vm.ip}")
                    break
                state = self.vm.step()
                if state is VmState.WAIT_FOR_INPUT:
                    self._print(f"Waiting for input at {self.vm.ip}. "
                                "Use 'send <values>' then 'run'.")
                    break
                steps += 1
                if state is VmState.TERMINATED:
                    break
            else:
                self._print(f"Stopped after {steps} steps.")
        except IntcodeError as e:
            self._print(f"Fault at {self.vm.ip}: {e}")
        self._flush_output()

    do_c = do_run

    def do_send(self, arg):
        """Queue input values: send <v>[,<v>...] [<v> ...]"""
        try:
            values = parse_values(shlex.split(arg))
        except ValueError as e:
            self._print(f"Error: {e}")
            return
        if not values:
            self._print("Usage: send <values>")
            return
        self.vm.feed(*values)
        self._print(f"  Queued {len(values)} value(s).")

    def do_output(self, arg):
        """Show every value emitted since the last reset."""
        self._print("  " + ",".join(str(v) for v in self.history))

    # -- Breakpoints --

    def do_bp(self, arg):
        """Set breakpoint: bp <address>  (no argument lists them)"""
        if not arg.strip():
            if self.breakpoints:
                self._print("Breakpoints:")
                for a in sorted(self.breakpoints):
                    self._print(f"  {a}")
            else:
                self._print("No breakpoints set.")
            return
        addr = self._parse_int(arg)
        self.breakpoints.add(addr)
        self._print(f"Breakpoint set at {addr}")

    def do_bpd(self, arg):
        """Delete breakpoint: bpd <address|all>"""
        if arg.strip().lower() == "all":
            self.breakpoints.clear()
            self._print("All breakpoints cleared.")
            return
        addr = self._parse_int(arg)
        self.breakpoints.discard(addr)
        self._print(f"Breakpoint at {addr} removed.")

    # -- Inspection --

    def do_regs(self, arg):
        """Show VM registers and state."""
        self._print(self.vm.dump_regs())

    def do_peek(self, arg):
        """Read one tape cell: peek <address>"""
        if not arg.strip():
            self._print("Usage: peek <address>")
            return
        addr = self._parse_int(arg)
        try:
            self._print(f"  [{addr}] = {self.vm.peek(addr)}")
        except IntcodeError as e:
            self._print(f"Error: {e}")

    def do_poke(self, arg):
        """Write tape cells: poke <address> <value> [value] ..."""
        parts = shlex.split(arg)
        if len(parts) < 2:
            self._print("Usage: poke <address> <value...>")
            return
        addr = self._parse_int(parts[0])
        try:
            for i, tok in enumerate(parts[1:]):
                self.vm.poke(addr + i, self._parse_int(tok))
        except IntcodeError as e:
            self._print(f"Error: {e}")
            return
        self._print(f"  Wrote {len(parts) - 1} word(s) at {addr}")

    def do_dump(self, arg):
        """Dump tape words: dump <address> [count]
        Count defaults to 32 words."""
        parts = shlex.split(arg)
        if not parts:
            self._print("Usage: dump <address> [count]")
            return
        addr = self._parse_int(parts[0])
        count = self._parse_int(parts[1]) if len(parts) > 1 else 32
        try:
            for row_start in range(addr, addr + count, 8):
                row_end = min(row_start + 8, addr + count)
                words = " ".join(f"{self.vm.peek(a):>8d}"
                                 for a in range(row_start, row_end))
                self._print(f"  {row_start:>6d}: {words}")
        except IntcodeError as e:
            self._print(f"Error: {e}")

    def do_disasm(self, arg):
        """Disassemble: disasm [address] [count]
        Defaults to current IP, 16 instructions."""
        parts = shlex.split(arg)
        addr = self._parse_int(parts[0]) if parts else self.vm.ip
        count = self._parse_int(parts[1]) if len(parts) > 1 else 16
        try:
            for _ in range(count):
                text, size = disasm_one(self.vm.tape, addr)
                raw = " ".join(str(self.vm.peek(addr + i)) for i in range(size))
                marker = ">>>" if addr == self.vm.ip else "   "
                self._print(f"  {marker} {addr:>6d}: {raw:<24s} {text}")
                addr += size
        except IntcodeError as e:
            self._print(f"Error: {e}")

    # -- Misc --

    def do_quit(self, arg):
        """Exit the monitor."""
        self._print("Goodbye.")
        return True
    do_exit = do_quit
    do_q = do_quit

    def do_EOF(self, arg):
        self._print("")
        return self.do_quit(arg)

    def default(self, line):
        """Handle unknown commands gracefully."""
        self._print(f"Unknown command: {line.split()[0]!r}. "
                    "Type 'help' for available commands.")

    def emptyline(self):
        """Don't repeat the last command on empty input."""
        pass


# ---------------------------------------------------------------------------
#  Main
# ---------------------------------------------------------------------------

def _run_amplifiers(program: list[int], args) -> int:
    phases = parse_values([args.amplify])
    circuit = run_feedback_loop if args.feedback else run_chain
    if args.optimize:
        best, ordering = optimize_phases(program, phases, circuit)
        print(f"Max signal: {best}. Phase setting: {ordering}")
    else:
        print(circuit(program, phases, 0))
    return 0


def _seed(vm: IntcodeVM, args):
    """Apply --poke writes and queue -i input before the first instruction."""
    for spec in args.poke:
        addr, value = parse_poke(spec)
        vm.poke(addr, value)
    vm.feed(*parse_values(args.input))


def _run_program(program: list[int], args) -> int:
    vm = IntcodeVM(program, output_sink=ConsoleOutputSink())
    _seed(vm, args)

    if args.trace:
        state = run_traced(vm, args.max_steps)
    else:
        state = vm.run(args.max_steps)

    if state is VmState.WAIT_FOR_INPUT:
        print(f"VM waiting for input at ip={vm.ip} "
              f"after {vm.step_count} steps.", file=sys.stderr)
        return 2
    if state is not VmState.TERMINATED:
        print(f"Stopped after {vm.step_count} steps (ip={vm.ip}).",
              file=sys.stderr)
        return 2
    if args.dump:
        print(",".join(str(v) for v in vm.tape.snapshot()))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Intcode VM runner and monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  python cli.py prog.txt -i 1\n"
               "  python cli.py prog.txt --poke 1=12 --poke 2=2 --dump\n"
               "  python cli.py prog.txt --amplify 5,6,7,8,9 --feedback --optimize\n"
               "  python cli.py prog.txt --monitor\n"
    )
    parser.add_argument("program", nargs="?", default=None,
                        help="Program file: comma-separated integers")
    parser.add_argument("-i", "--input", action="append", default=[],
                        metavar="VALUES",
                        help="Input values, comma-separated (can repeat)")
    parser.add_argument("--poke", action="append", default=[],
                        metavar="ADDR=VALUE",
                        help="Write VALUE at ADDR before running (can repeat)")
    parser.add_argument("--trace", action="store_true",
                        help="Print every executed instruction")
    parser.add_argument("--max-steps", type=int, default=None, metavar="N",
                        help="Stop after N instructions")
    parser.add_argument("--dump", action="store_true",
                        help="Print the final tape after termination")
    parser.add_argument("--amplify", type=str, default=None, metavar="PHASES",
                        help="Run an amplifier chain with these phase settings")
    parser.add_argument("--feedback", action="store_true",
                        help="Wire the amplifiers into a feedback loop")
    parser.add_argument("--optimize", action="store_true",
                        help="Search all phase orderings for the max signal")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--run", action="store_true",
                      help="Run the program once and exit (default)")
    mode.add_argument("--monitor", action="store_true",
                      help="Start the interactive debug monitor")
    args = parser.parse_args(argv)

    if args.program is None and not args.monitor:
        parser.error("a program file is required unless --monitor is given")
    if args.run and args.amplify:
        parser.error("--run and --amplify are separate modes")

    try:
        program = load_program(args.program) if args.program else []
    except (OSError, ValueError) as e:
        print(f"Error loading program: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.monitor:
            cli = IntcodeCLI(program)
            _seed(cli.vm, args)
        elif args.amplify:
            return _run_amplifiers(program, args)
        else:
            return _run_program(program, args)
    except (IntcodeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        cli.cmdloop()
    except KeyboardInterrupt:
        print("\nInterrupted. Goodbye.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
