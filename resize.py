# -*- coding: utf-8 -*-
import os
import sys
import argparse
import logging
from dataclasses import dataclass
from typing import List, Optional

from transcoder import __version__
from transcoder.errors import TranscodeError
from transcoder.pipeline import default_output_filename, read_input, run_iterations

log_formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(processName)s: %(message)s', datefmt='%Y-%m-%d %H:%M:%S')

log_handler = logging.StreamHandler()
log_handler.setFormatter(log_formatter)

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "t", "true", "y", "yes")
_FALSE_VALUES = ("0", "f", "false", "n", "no")


def setup_logging(level: int):
    """Attaches the console handler to the root logger once and sets its level."""
    root_logger = logging.getLogger()
    if log_handler not in root_logger.handlers:
        root_logger.addHandler(log_handler)
    root_logger.setLevel(level)


@dataclass
class Config:
    """
    Settings for one invocation, built from the command line.

    ``output_file`` defaults to ``"resized"`` plus the input extension.
    A width or height of 0 keeps the source dimension.
    """
    input_file: str
    output_file: Optional[str] = None
    width: int = 0
    height: int = 0
    stretch: bool = False
    iteration: int = 1
    verbose: bool = False

    def __post_init__(self):
        if not self.input_file:
            raise ValueError("An input file is required.")
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Width and height cannot be negative (got {self.width}x{self.height}).")
        if self.iteration < 1:
            raise ValueError(f"Iteration count must be at least 1, got {self.iteration}.")
        if not self.output_file:
            self.output_file = default_output_filename(self.input_file)

    @property
    def log_level(self) -> int:
        return logging.DEBUG if self.verbose else logging.INFO


def str_to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: '{value}'")


def get_parser():
    parser = argparse.ArgumentParser(
        description=f"Single image resizer/transcoder (v{__version__})",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("-input", "--input", dest="input_file", default="",
                        help="name of input file to resize/transcode")
    parser.add_argument("-output", "--output", dest="output_file", default="",
                        help="name of output file, also determines output type\n"
                             "(default: 'resized' + input extension)")
    parser.add_argument("-width", "--width", type=int, default=0,
                        help="width of output file (default: 0, source width)")
    parser.add_argument("-height", "--height", type=int, default=0,
                        help="height of output file (default: 0, source height)")
    parser.add_argument("-stretch", "--stretch", type=str_to_bool, nargs="?", const=True, default=False,
                        metavar="BOOL",
                        help="perform stretching resize instead of fitting within width x height")
    parser.add_argument("-iteration", "--iteration", type=int, default=1,
                        help="number of iterations (default: 1)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose (DEBUG level) logging for detailed output.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_arguments(argv: Optional[List[str]] = None) -> Config:
    parser = get_parser()
    args = parser.parse_args(argv)

    if not args.input_file:
        print("No input filename provided, quitting.")
        parser.print_usage()
        sys.exit(1)

    if args.width < 0 or args.height < 0:
        parser.error(f"-width and -height cannot be negative values (got {args.width}x{args.height}).")
    if args.iteration < 1:
        parser.error(f"-iteration must be at least 1, got {args.iteration}.")

    return Config(**vars(args))


def run(config: Config) -> int:
    try:
        input_bytes = read_input(config.input_file)
        stats = run_iterations(
            input_bytes,
            config.width,
            config.height,
            config.output_file,
            config.stretch,
            iterations=config.iteration,
            progress=config.iteration > 1,
        )
    except TranscodeError as e:
        logger.critical(f"(!) Error: {e}", exc_info=config.verbose)
        return 1

    if stats.iterations > 1:
        logger.info(f"{stats.iterations} iterations in {stats.elapsed:.3f} s ({stats.average * 1000:.2f} ms per iteration)")
    logger.debug(f"Output: {os.path.abspath(config.output_file)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    config = parse_arguments(argv)
    setup_logging(config.log_level)
    try:
        return run(config)
    except KeyboardInterrupt:
        print("\nOperation interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
