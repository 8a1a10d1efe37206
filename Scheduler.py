import collections
import logging

from Config import merge_latencies
from Hazards import HazardDetector
from Instruction import STAGES

logger = logging.getLogger(__name__)

# One record per stall decision: instruction `index` was pushed `shift` cycles
# because `hazard` against instruction `producer` required `stage` > `resolution_cycle`.
TraceRecord = collections.namedtuple(
    "TraceRecord", ["index", "hazard", "producer", "stage", "resolution_cycle", "shift"])


class SchedulingError(RuntimeError):
    """Raised if the stall loop fails to reach a fixed point (a bug, never an input error)."""


class ScheduleResult:
    def __init__(self, instructions, trace):
        self.instructions = instructions
        self.trace = trace

    @property
    def total_cycles(self):
        """Cycle on which the pipeline drains: the last writeback, or 0 when empty."""
        return max((inst.cycles["WB"] for inst in self.instructions), default=0)

    @property
    def stall_cycles(self):
        return sum(record.shift for record in self.trace)

    def stage_table(self):
        lines = []
        for i, inst in enumerate(self.instructions):
            stages = " ".join(f"{stage}={inst.cycles[stage]}" for stage in STAGES)
            marker = " (STALLED)" if inst.stalled else ""
            lines.append(f"Instruction {i} ({inst.text}): {stages}{marker}")
        return lines

    def to_dict(self):
        instructions = []
        for i, inst in enumerate(self.instructions):
            entry = inst.to_dict()
            entry["index"] = i
            instructions.append(entry)
        return {
            "cycles": self.total_cycles,
            "stall_cycles": self.stall_cycles,
            "instructions": instructions,
            "trace": [record._asdict() for record in self.trace],
        }


class PipelineScheduler:
    """
    In-order, single-issue scheduler for the five-stage pipeline.

    Instructions are scheduled one at a time in program order. Each one is
    seeded one fetch cycle after its predecessor and then stalled until no
    hazard against any earlier instruction is outstanding.
    """

    def __init__(self, latencies: dict = None):
        self.latencies = merge_latencies(latencies)
        self.detector = HazardDetector(self.latencies)

    def schedule(self, instructions) -> ScheduleResult:
        """
        Schedule a program.

        Args:
            instructions (list): Instruction objects in program order. They are
                not modified; fresh copies are scheduled instead.

        Returns:
            ScheduleResult: scheduled copies plus the stall trace.
        """
        history = []
        trace = []

        for index, original in enumerate(instructions):
            inst = original.copy()
            if index == 0:
                inst.place(1, self.latencies)
            else:
                inst.place(history[-1].cycles["IF"] + 1, self.latencies)
            logger.debug("Instruction %d (%s) seeded at IF=%d", index, inst.text, inst.cycles["IF"])

            self._resolve_hazards(index, inst, history, trace)

            inst.finalize()
            history.append(inst)
            logger.debug("Instruction %d (%s): %s%s", index, inst.text,
                         " ".join(f"{s}={inst.cycles[s]}" for s in STAGES),
                         " (STALLED)" if inst.stalled else "")

        result = ScheduleResult(history, trace)
        logger.debug("Simulation complete. Total cycles: %d", result.total_cycles)
        return result

    def total_cycles(self, instructions) -> int:
        return self.schedule(instructions).total_cycles

    def _cycle_bound(self, inst, history):
        # every hazard resolves no later than the latest cycle already in use
        # plus the memory unit spacing, so IF can never need to pass that point
        latest = max(p.cycles["WB"] for p in history)
        fetch_limit = latest + self.latencies["memory_unit"] + 1
        return inst.cycle_sum() - inst.cycles["IF"] * len(STAGES) + fetch_limit * len(STAGES)

    def _resolve_hazards(self, index, inst, history, trace):
        """Push inst forward until a fixed point: no outstanding hazard against history."""
        if not history:
            return
        bound = self._cycle_bound(inst, history)

        while True:
            hazards = self.detector.detect_all(inst, history)
            shift, governing = self.detector.required_shift(inst, hazards)
            if shift == 0:
                return

            progress = inst.cycle_sum()
            inst.push(shift)
            if inst.cycle_sum() <= progress or inst.cycle_sum() > bound:
                raise SchedulingError(
                    f"Stall loop for instruction {index} ({inst.text}) did not converge")

            trace.append(TraceRecord(index, governing.kind, governing.producer,
                                     governing.stage, governing.resolution_cycle, shift))
            logger.debug("%s hazard: Instruction %d waiting on instruction %d, "
                         "%s must follow cycle %d, stalled %d cycle(s)",
                         governing.kind, index, governing.producer,
                         governing.stage, governing.resolution_cycle, shift)
