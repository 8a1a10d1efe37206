"""
Pipeline hazard scheduler

Reads a program from a file or stdin:

    3
    LOAD R1, M1
    ADD R2, R1, R3
    STORE R2, M2

and prints the number of cycles needed to retire every instruction through the
five-stage pipeline (IF, ID, EX, MEM, WB), stalls included.

Run:
    python3 main.py < program.txt
    python3 main.py program.txt --trace
    python3 main.py program.txt --plot schedule.png
"""

import argparse
import logging
import sys

from Config import load_config
from Parser import PipelineInputError
from Simulator import Simulator


def build_parser():
    parser = argparse.ArgumentParser(description="Five-stage pipeline cycle counter")
    parser.add_argument("file", nargs="?", help="program file (default: stdin)")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--trace", action="store_true",
                        help="print the stage table and stall decisions to stderr")
    parser.add_argument("--plot", metavar="PNG", help="save a pipeline diagram")
    return parser


def main(argv=None, stdin=None, stdout=None, stderr=None):
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=stderr)
        return 1

    level = "DEBUG" if args.trace else config["logging"]["level"]
    logging.basicConfig(stream=stderr, level=level,
                        format="%(levelname)s %(name)s: %(message)s", force=True)

    try:
        if args.file:
            with open(args.file, 'r') as f:
                text = f.read()
        else:
            text = stdin.read()

        sim = Simulator(config)
        sim.load_program(text)
        cycles = sim.run()
    except PipelineInputError as e:
        print(f"Error: {e}", file=stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=stderr)
        return 1

    print(cycles, file=stdout)

    if args.trace:
        for line in sim.display():
            print(line, file=stderr)
    if args.plot:
        try:
            sim.plot(args.plot)
        except OSError as e:
            print(f"Error: {e}", file=stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
