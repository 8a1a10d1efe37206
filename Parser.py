import logging
import re

from Instruction import KINDS, Load, Store, Operand, is_register

logger = logging.getLogger(__name__)


class PipelineInputError(ValueError):
    """Base class for everything the input adapter rejects."""


class MalformedInstruction(PipelineInputError):
    def __init__(self, message, line=None, lineno=None):
        self.line = line
        self.lineno = lineno
        where = f"line {lineno}: " if lineno is not None else ""
        super().__init__(f"{where}{message}: {line!r}" if line is not None else f"{where}{message}")


class MalformedHeader(PipelineInputError):
    """The first line is not a non-negative instruction count."""


class TruncatedInput(PipelineInputError):
    """Fewer instruction lines than the declared count."""


# a comment is a line starting with #, or a # followed by whitespace;
# "#5" stays a token so immediates may be written with a leading #
COMMENT = re.compile(r"^\s*#|#(?=\s|$)")


def strip_comment(line):
    match = COMMENT.search(line)
    if match:
        line = line[:match.start()]
    return line.strip()


def tokenize(line):
    # commas are just separators: "ADD R1, R2, R3" and "ADD R1 R2 R3" are the same
    return line.strip().replace(',', ' ').split()


def parse_instruction(line, lineno=None):
    """
    Parse one instruction record.

    Args:
        line (str): e.g. "LOAD R1, M1" or "SUB R2, R1, 4"
        lineno (int): Line number used in error messages

    Returns:
        Instruction: a Load, Store, Add or Sub

    Raises:
        MalformedInstruction: unknown keyword, wrong operand count, or a
            non-register where a register is required
    """
    tokens = tokenize(strip_comment(line))
    if not tokens:
        raise MalformedInstruction("Empty instruction", line, lineno)

    opcode = tokens[0].upper()
    operands = tokens[1:]
    if opcode not in KINDS:
        raise MalformedInstruction(f"Unknown instruction type '{tokens[0]}'", line, lineno)

    variant = KINDS[opcode]
    expected = 2 if variant in (Load, Store) else 3
    if len(operands) != expected:
        message = f"{opcode} takes {expected} operands, got {len(operands)}"
        if any(op.startswith("#") for op in operands[expected:]):
            message += " (a comment needs whitespace after '#')"
        raise MalformedInstruction(message, line, lineno)

    if not is_register(operands[0]):
        role = "source" if variant is Store else "destination"
        raise MalformedInstruction(
            f"{opcode} {role} must be a register, got '{operands[0]}'", line, lineno)

    if expected == 2:
        inst = variant(operands[0], operands[1])
    else:
        inst = variant(operands[0], Operand.parse(operands[1]), Operand.parse(operands[2]))

    logger.debug("Parsed %s", inst.text)
    return inst


def parse_lines(lines):
    """Parse instruction records (no count header), skipping blank and comment lines."""
    instructions = []
    for lineno, line in enumerate(lines, start=1):
        if not strip_comment(line):
            continue
        instructions.append(parse_instruction(line, lineno))
    return instructions


def parse_program(text):
    """
    Parse a whole program: a count line followed by that many records.

    Blank and comment-only lines are skipped and do not count toward the
    declared number. Anything after the last declared record is ignored.
    """
    lines = text.splitlines()
    records = [(lineno, line) for lineno, line in enumerate(lines, start=1) if strip_comment(line)]
    if not records:
        raise TruncatedInput("Failed to read number of instructions")

    header_lineno, header = records[0]
    try:
        count = int(strip_comment(header))
    except ValueError:
        raise MalformedHeader(f"line {header_lineno}: expected an instruction count, got {header.strip()!r}")
    if count < 0:
        raise MalformedHeader(f"line {header_lineno}: instruction count must not be negative, got {count}")

    body = records[1:]
    if len(body) < count:
        raise TruncatedInput(
            f"Failed to read instruction {len(body) + 1}: expected {count}, got {len(body)}")
    if len(body) > count:
        logger.warning("Ignoring %d line(s) after the %d declared instruction(s)", len(body) - count, count)

    return [parse_instruction(line, lineno) for lineno, line in body[:count]]
