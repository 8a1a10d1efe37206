import logging

import matplotlib.pyplot as plt
import numpy as np

from Config import load_config, merge_latencies
from Instruction import STAGES
from Parser import parse_lines, parse_program
from Scheduler import PipelineScheduler

logger = logging.getLogger(__name__)


class Simulator:
    def __init__(self, config=None, latencies=None):
        self.config = config if config is not None else load_config()
        self.latencies = merge_latencies({**self.config["latencies"], **(latencies or {})})
        self.scheduler = PipelineScheduler(self.latencies)
        self.program = []
        self.result = None

    def load_program(self, text):
        """Load a program in counted form (first line is the number of instructions)."""
        self.program = parse_program(text)
        self.result = None
        logger.info("Loaded %d instructions", len(self.program))

    def load_instructions(self, lines):
        """Load bare instruction lines without a count header."""
        self.program = parse_lines(lines)
        self.result = None
        logger.info("Loaded %d instructions", len(self.program))

    def run(self):
        self.result = self.scheduler.schedule(self.program)
        logger.info("clock cycles: %d, stall cycles: %d",
                    self.result.total_cycles, self.result.stall_cycles)
        return self.result.total_cycles

    def display(self):
        """Return the per-instruction stage table and the stall trace as text lines."""
        if self.result is None:
            self.run()
        lines = ["=== Pipeline Schedule ==="]
        lines.extend(self.result.stage_table())
        if self.result.trace:
            lines.append("=== Stalls ===")
            for record in self.result.trace:
                lines.append(
                    f"Instruction {record.index}: {record.hazard} hazard on instruction "
                    f"{record.producer}, {record.stage} after cycle {record.resolution_cycle}, "
                    f"stalled {record.shift}")
        lines.append(f"Number of clock cycles: {self.result.total_cycles}")
        return lines

    def plot(self, path=None):
        if self.result is None:
            self.run()
        return plot_pipeline(self.result, path=path, **self.config["plot"])


def pipeline_matrix(result):
    """
    Stage occupancy as a matrix: one row per instruction, one column per
    cycle, 0 for idle and 1..5 for IF..WB. A load's extra MEM->WB cycle is
    shown as MEM.
    """
    total = result.total_cycles
    matrix = np.zeros((len(result.instructions), total), dtype=int)
    for row, inst in enumerate(result.instructions):
        for number, stage in enumerate(STAGES, start=1):
            matrix[row, inst.cycles[stage] - 1] = number
        mem, wb = inst.cycles["MEM"], inst.cycles["WB"]
        matrix[row, mem:wb - 1] = STAGES.index("MEM") + 1
    return matrix


def plot_pipeline(result, path=None, cmap="Blues", figsize=(12, 4)):
    """Draw the pipeline diagram; save it to path, or show it when no path is given."""
    matrix = pipeline_matrix(result)
    labels = ("",) + STAGES

    fig = plt.figure(figsize=tuple(figsize))
    plt.imshow(matrix, cmap=cmap, aspect='auto', vmin=0, vmax=len(STAGES))
    for i in range(matrix.shape[0]):
        for j in range(matrix.shape[1]):
            if matrix[i, j]:
                plt.text(j, i, labels[matrix[i, j]], ha='center', va='center', color='black')
    plt.yticks(range(matrix.shape[0]), [inst.text for inst in result.instructions])
    plt.xticks(range(matrix.shape[1]), [str(c) for c in range(1, matrix.shape[1] + 1)])
    plt.xlabel("Cycle")
    plt.title(f"Pipeline schedule ({result.total_cycles} cycles)")
    plt.tight_layout()

    if path is None:
        plt.show()
    else:
        try:
            fig.savefig(path)
        finally:
            plt.close(fig)
    return matrix
