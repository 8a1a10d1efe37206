import collections
import logging

logger = logging.getLogger(__name__)

# kind: RAW / WAR / WAW / MEMORY / STRUCTURAL
# stage: the candidate stage that must come strictly after resolution_cycle
Hazard = collections.namedtuple("Hazard", ["kind", "producer", "stage", "resolution_cycle"])


class HazardDetector:
    """
    Decides whether a candidate instruction has to wait on an earlier,
    already scheduled one.

    Every detect_* method returns a Hazard when the candidate's current
    cycles violate the rule, or None when the rule does not apply or is
    already satisfied. ``producer`` in the returned Hazard is the index of
    the earlier instruction in program order.
    """

    def __init__(self, latencies: dict):
        self.latencies = latencies

    # --- Helper Methods ---
    @staticmethod
    def _outstanding(kind, candidate, producer_index, stage, resolution_cycle):
        if candidate.cycles[stage] <= resolution_cycle:
            return Hazard(kind, producer_index, stage, resolution_cycle)
        return None

    @staticmethod
    def data_available_cycle(producer):
        """Cycle at which a produced register value can be read by a later ID."""
        if producer.kind == "LOAD":
            return producer.cycles["WB"]
        return producer.cycles["MEM"]

    # --- Hazard classes ---
    def detect_raw_hazard(self, candidate, producer, producer_index=None):
        """Candidate reads a register the producer writes."""
        dest = producer.writes()
        if dest is None or dest not in candidate.reads():
            return None
        return self._outstanding("RAW", candidate, producer_index, "ID",
                                 self.data_available_cycle(producer))

    def detect_war_hazard(self, candidate, producer, producer_index=None):
        """Candidate writes a register the producer still has to read in its ID."""
        dest = candidate.writes()
        if dest is None or dest not in producer.reads():
            return None
        return self._outstanding("WAR", candidate, producer_index, "ID",
                                 producer.cycles["ID"])

    def detect_waw_hazard(self, candidate, producer, producer_index=None):
        """Both write the same register; writebacks commit in program order."""
        dest = candidate.writes()
        if dest is None or dest != producer.writes():
            return None
        return self._outstanding("WAW", candidate, producer_index, "WB",
                                 producer.cycles["WB"])

    def detect_memory_hazard(self, candidate, producer, producer_index=None):
        """Both access the same memory location; accesses stay in program order."""
        if not (candidate.is_memory_op and producer.is_memory_op):
            return None
        if candidate.mem_location != producer.mem_location:
            return None
        return self._outstanding("MEMORY", candidate, producer_index, "MEM",
                                 producer.cycles["MEM"])

    def detect_structural_hazard(self, candidate, producer, producer_index=None):
        """Both need the single memory unit, whatever the address."""
        if not (candidate.is_memory_op and producer.is_memory_op):
            return None
        spacing = self.latencies["memory_unit"]
        return self._outstanding("STRUCTURAL", candidate, producer_index, "MEM",
                                 producer.cycles["MEM"] + spacing - 1)

    def detect(self, candidate, producer, producer_index=None):
        """Return every outstanding hazard between candidate and one producer."""
        checks = (self.detect_raw_hazard,
                  self.detect_war_hazard,
                  self.detect_waw_hazard,
                  self.detect_memory_hazard,
                  self.detect_structural_hazard)
        hazards = []
        for check in checks:
            hazard = check(candidate, producer, producer_index)
            if hazard is not None:
                hazards.append(hazard)
        return hazards

    def detect_all(self, candidate, history):
        """Check the candidate against every earlier instruction, not just the last one."""
        hazards = []
        for index, producer in enumerate(history):
            hazards.extend(self.detect(candidate, producer, index))
        if hazards:
            logger.debug("%s: %d outstanding hazard(s): %s", candidate.text, len(hazards), hazards)
        return hazards

    @staticmethod
    def required_shift(candidate, hazards):
        """
        Smallest uniform push of all stages that clears every given hazard.

        Returns (shift, governing_hazard); shift is 0 and governing_hazard is
        None when nothing is outstanding.
        """
        shift = 0
        governing = None
        for hazard in hazards:
            needed = hazard.resolution_cycle + 1 - candidate.cycles[hazard.stage]
            if needed > shift:
                shift = needed
                governing = hazard
        return shift, governing
