"""
Intcode Errors
===============
Every fatal interpreter condition derives from IntcodeError.  The VM,
the ports and the pipeline drivers all raise from this one hierarchy;
intcode re-exports it so callers never import this module directly.

  IntcodeError
    DecodeError       unknown opcode or mode digit, immediate-mode write
    AddressError      negative address, jump target or relative base
    InputUnderflow    pop from an empty input port
    HaltError         step() on a terminated VM
"""


class IntcodeError(Exception):
    """Base for all fatal interpreter conditions."""
    pass

class DecodeError(IntcodeError):
    def __init__(self, message: str, instruction: int = 0, address: int = 0):
        self.instruction = instruction
        self.address = address
        super().__init__(message)

class AddressError(IntcodeError):
    def __init__(self, value: int, message: str = ""):
        self.value = value
        super().__init__(message or f"Invalid address: {value}")

class InputUnderflow(IntcodeError):
    pass

class HaltError(IntcodeError):
    pass
