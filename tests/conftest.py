import matplotlib

matplotlib.use("Agg")

import pytest

from Config import DEFAULTS
from Instruction import Add, Load, Store, Sub


@pytest.fixture
def latencies():
    return dict(DEFAULTS["latencies"])


@pytest.fixture
def scheduled():
    """Place an instruction at a fixed fetch cycle and retire it, bypassing the scheduler."""
    def place(inst, fetch_cycle):
        inst.place(fetch_cycle, DEFAULTS["latencies"])
        inst.finalize()
        return inst
    return place


@pytest.fixture
def load_add_program():
    return [Load("R1", "M1"), Add("R2", "R1", "R3")]


@pytest.fixture
def mixed_program():
    return [
        Load("R1", "M1"),
        Load("R2", "M2"),
        Add("R3", "R1", "R2"),
        Store("R3", "M3"),
        Sub("R4", "R3", "1"),
        Add("R5", "R6", "R7"),
        Load("R3", "M3"),
        Store("R4", "M1"),
    ]
