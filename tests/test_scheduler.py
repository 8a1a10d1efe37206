import pytest

from Instruction import STAGES, Add, Load, Store, Sub
from Scheduler import PipelineScheduler, TraceRecord


def stages(inst):
    return [inst.cycles[s] for s in STAGES]


@pytest.fixture
def scheduler():
    return PipelineScheduler()


def test_empty_program_takes_zero_cycles(scheduler):
    result = scheduler.schedule([])
    assert result.total_cycles == 0
    assert result.instructions == []
    assert result.trace == []


def test_single_add(scheduler):
    result = scheduler.schedule([Add("R1", "R2", "R3")])
    assert stages(result.instructions[0]) == [1, 2, 3, 4, 5]
    assert result.total_cycles == 5


def test_single_load_has_longer_writeback(scheduler):
    result = scheduler.schedule([Load("R1", "M1")])
    assert stages(result.instructions[0]) == [1, 2, 3, 4, 6]
    assert result.total_cycles == 6


def test_independent_instructions_do_not_stall(scheduler):
    program = [Add("R1", "R2", "R3"), Sub("R4", "R5", "7"), Add("R6", "R7", "R8")]
    result = scheduler.schedule(program)

    assert [inst.cycles["IF"] for inst in result.instructions] == [1, 2, 3]
    assert [inst.cycles["WB"] for inst in result.instructions] == [5, 6, 7]
    assert not any(inst.stalled for inst in result.instructions)
    assert result.trace == []
    assert result.total_cycles == 7


def test_alu_to_alu_raw_waits_for_execute(scheduler):
    producer, consumer = scheduler.schedule([Add("R1", "R2", "R3"), Add("R4", "R1", "R5")]).instructions
    assert stages(consumer) == [4, 5, 6, 7, 8]
    assert consumer.cycles["ID"] > producer.cycles["EX"]
    assert consumer.stalled


def test_load_to_alu_raw_waits_for_writeback(scheduler, load_add_program):
    result = scheduler.schedule(load_add_program)
    load, add = result.instructions

    assert stages(add) == [6, 7, 8, 9, 10]
    assert add.cycles["ID"] > load.cycles["WB"]
    assert result.total_cycles == 10
    assert result.trace == [TraceRecord(1, "RAW", 0, "ID", 6, 4)]

    independent = scheduler.schedule([Load("R1", "M1"), Add("R2", "R4", "R3")])
    assert result.total_cycles > independent.total_cycles


def test_store_then_load_same_location(scheduler):
    store, load = scheduler.schedule([Store("R1", "M1"), Load("R2", "M1")]).instructions
    assert load.cycles["MEM"] > store.cycles["MEM"]
    assert stages(load) == [3, 4, 5, 6, 8]


def test_memory_ops_respect_memory_unit_spacing(scheduler):
    program = [Load("R1", "M1"), Store("R2", "M2"), Load("R3", "M3"), Add("R4", "R5", "R6"), Store("R7", "M4")]
    result = scheduler.schedule(program)

    mem_cycles = [inst.cycles["MEM"] for inst in result.instructions if inst.is_memory_op]
    for earlier, later in zip(mem_cycles, mem_cycles[1:]):
        assert later - earlier >= 2
    assert stages(result.instructions[2]) == [5, 6, 7, 8, 10]


def test_waw_keeps_writebacks_in_order(scheduler):
    load, add = scheduler.schedule([Load("R1", "M1"), Add("R1", "R2", "R3")]).instructions
    assert add.cycles["WB"] > load.cycles["WB"]
    assert stages(add) == [3, 4, 5, 6, 7]


def test_hazard_from_non_adjacent_instruction(scheduler):
    program = [Load("R1", "M1"), Add("R5", "R6", "R7"), Add("R2", "R1", "R3")]
    result = scheduler.schedule(program)

    assert stages(result.instructions[1]) == [2, 3, 4, 5, 6]
    assert stages(result.instructions[2]) == [6, 7, 8, 9, 10]
    assert result.trace == [TraceRecord(2, "RAW", 0, "ID", 6, 3)]


def test_mixed_program_schedule(scheduler):
    program = [Load("R1", "M1"), Load("R2", "M2"), Add("R3", "R1", "R2"), Store("R3", "M3")]
    result = scheduler.schedule(program)

    assert [stages(inst) for inst in result.instructions] == [
        [1, 2, 3, 4, 6],
        [3, 4, 5, 6, 8],
        [8, 9, 10, 11, 12],
        [11, 12, 13, 14, 15],
    ]
    assert result.total_cycles == 15
    assert result.trace == [
        TraceRecord(1, "STRUCTURAL", 0, "MEM", 5, 1),
        TraceRecord(2, "RAW", 1, "ID", 8, 4),
        TraceRecord(3, "RAW", 2, "ID", 11, 2),
    ]
    assert result.stall_cycles == 7


def test_schedule_invariants(scheduler, mixed_program):
    result = scheduler.schedule(mixed_program)

    previous = None
    for inst in result.instructions:
        cycles = stages(inst)
        assert cycles == sorted(set(cycles))
        assert inst.cycles["WB"] - inst.cycles["MEM"] == (2 if inst.kind == "LOAD" else 1)
        assert inst.state == "final"
        if previous is not None:
            assert inst.cycles["IF"] >= previous.cycles["IF"] + 1
        previous = inst

    assert result.total_cycles == max(inst.cycles["WB"] for inst in result.instructions)


def test_schedule_does_not_touch_input(scheduler, load_add_program):
    scheduler.schedule(load_add_program)
    assert all(inst.state == "unscheduled" for inst in load_add_program)
    assert all(inst.cycles["IF"] is None for inst in load_add_program)


def test_scheduling_is_idempotent(scheduler, mixed_program):
    first = scheduler.schedule(mixed_program)
    second = scheduler.schedule(mixed_program)
    assert [stages(i) for i in first.instructions] == [stages(i) for i in second.instructions]
    assert first.trace == second.trace
    assert PipelineScheduler().total_cycles(mixed_program) == first.total_cycles


def test_latency_overrides():
    scheduler = PipelineScheduler({"memory_unit": 3})
    store, load = scheduler.schedule([Store("R1", "M1"), Load("R2", "M2")]).instructions
    assert stages(load) == [4, 5, 6, 7, 9]


def test_unknown_latency_rejected():
    with pytest.raises(ValueError):
        PipelineScheduler({"execute": 2})


def test_result_to_dict(scheduler, load_add_program):
    data = scheduler.schedule(load_add_program).to_dict()
    assert data["cycles"] == 10
    assert data["stall_cycles"] == 4
    assert data["instructions"][1] == {
        "index": 1, "kind": "ADD", "text": "ADD R2, R1, R3",
        "IF": 6, "ID": 7, "EX": 8, "MEM": 9, "WB": 10, "stalled": True,
    }
    assert data["trace"] == [{
        "index": 1, "hazard": "RAW", "producer": 0, "stage": "ID",
        "resolution_cycle": 6, "shift": 4,
    }]


def test_stage_table(scheduler, load_add_program):
    lines = scheduler.schedule(load_add_program).stage_table()
    assert lines == [
        "Instruction 0 (LOAD R1, M1): IF=1 ID=2 EX=3 MEM=4 WB=6",
        "Instruction 1 (ADD R2, R1, R3): IF=6 ID=7 EX=8 MEM=9 WB=10 (STALLED)",
    ]
