import copy

STAGES = ("IF", "ID", "EX", "MEM", "WB")


def is_register(token):
    """Register names are R followed by at least one more character, e.g. R1."""
    return token[:1] in ("R", "r") and len(token) > 1


class Operand:
    """A source operand of an ALU instruction: either a register or an immediate."""

    __slots__ = ("value", "is_register")

    def __init__(self, value: str, is_register: bool):
        self.value = value
        self.is_register = is_register

    @staticmethod
    def register(name):
        return Operand(name.upper(), True)

    @staticmethod
    def immediate(text):
        return Operand(text, False)

    @staticmethod
    def parse(token):
        """Classify a source token: register names are registers, anything else is an immediate."""
        if isinstance(token, Operand):
            return token
        if is_register(token):
            return Operand.register(token)
        return Operand.immediate(token)

    def __eq__(self, other):
        return (isinstance(other, Operand) and
                self.value == other.value and
                self.is_register == other.is_register)

    def __hash__(self):
        return hash((self.value, self.is_register))

    def __str__(self):
        return self.value

    def __repr__(self):
        kind = "reg" if self.is_register else "imm"
        return f"Operand({kind} {self.value})"


class Instruction:
    """
    Base of the four instruction variants.

    Operand fields are fixed at construction. The stage cycles live in
    ``cycles`` (keyed like a pipeline register: IF/ID/EX/MEM/WB) and are
    filled in by the scheduler only.
    """

    kind = None
    # cycles between entering MEM and entering WB
    writeback_key = "writeback"
    is_memory_op = False

    def __init__(self):
        self.cycles = {stage: None for stage in STAGES}
        self.state = "unscheduled"
        self.stalled = False

    # --- operand queries used by hazard detection ---
    @property
    def dest(self):
        return None

    @property
    def src1(self):
        return None

    @property
    def src2(self):
        return None

    @property
    def mem_location(self):
        return None

    def reads(self):
        """Return the registers this instruction reads (immediates excluded)."""
        return [op.value for op in (self.src1, self.src2)
                if op is not None and op.is_register]

    def writes(self):
        """Return the destination register, or None."""
        return self.dest

    # --- scheduling ---
    def place(self, fetch_cycle: int, latencies: dict):
        """Lay out all five stages starting from the given fetch cycle."""
        self.cycles["IF"] = fetch_cycle
        self.cycles["ID"] = fetch_cycle + 1
        self.cycles["EX"] = fetch_cycle + 2
        self.cycles["MEM"] = fetch_cycle + 3
        self.cycles["WB"] = fetch_cycle + 3 + latencies[self.writeback_key]
        self.state = "tentative"

    def push(self, cycles: int):
        """Stall every stage forward by the same number of cycles."""
        if self.state == "final":
            raise RuntimeError(f"cannot stall retired instruction {self.text}")
        for stage in STAGES:
            self.cycles[stage] += cycles
        self.stalled = True
        self.state = "stalled"

    def finalize(self):
        self.state = "final"

    def cycle_sum(self):
        return sum(self.cycles.values())

    def copy(self):
        """Return an unscheduled copy with the same operands."""
        fresh = copy.copy(self)
        fresh.cycles = {stage: None for stage in STAGES}
        fresh.state = "unscheduled"
        fresh.stalled = False
        return fresh

    @property
    def text(self):
        raise NotImplementedError

    def to_dict(self):
        entry = {"kind": self.kind, "text": self.text}
        entry.update(self.cycles)
        entry["stalled"] = self.stalled
        return entry

    def __eq__(self, other):
        return type(self) is type(other) and self.text == other.text

    def __hash__(self):
        return hash(self.text)

    def __repr__(self):
        stages = " ".join(f"{s}={self.cycles[s]}" for s in STAGES)
        return f"<{self.text} {stages}>"


class Load(Instruction):
    kind = "LOAD"
    writeback_key = "load_writeback"
    is_memory_op = True

    def __init__(self, dest, mem_location):
        super().__init__()
        self._dest = dest.upper()
        self._mem_location = mem_location

    @property
    def dest(self):
        return self._dest

    @property
    def mem_location(self):
        return self._mem_location

    @property
    def text(self):
        return f"LOAD {self._dest}, {self._mem_location}"


class Store(Instruction):
    kind = "STORE"
    is_memory_op = True

    def __init__(self, src, mem_location):
        super().__init__()
        self._src = Operand.register(src)
        self._mem_location = mem_location

    @property
    def src1(self):
        return self._src

    @property
    def mem_location(self):
        return self._mem_location

    @property
    def text(self):
        return f"STORE {self._src}, {self._mem_location}"


class AluInstruction(Instruction):
    """ADD and SUB: one destination register, two register-or-immediate sources."""

    def __init__(self, dest, src1, src2):
        super().__init__()
        self._dest = dest.upper()
        self._src1 = Operand.parse(src1)
        self._src2 = Operand.parse(src2)

    @property
    def dest(self):
        return self._dest

    @property
    def src1(self):
        return self._src1

    @property
    def src2(self):
        return self._src2

    @property
    def text(self):
        return f"{self.kind} {self._dest}, {self._src1}, {self._src2}"


class Add(AluInstruction):
    kind = "ADD"


class Sub(AluInstruction):
    kind = "SUB"


# keyword -> variant, used by the parser
KINDS = {
    "LOAD": Load,
    "STORE": Store,
    "ADD": Add,
    "SUB": Sub,
}
