"""
Command-line front end:

    python -m include_cleaner [--root DIR] [-I DIR]... [-D NAME[=VAL]]...
                              [--config FILE] [--Werror] [--no-preprocess]
                              [-v] FILES...

Diagnostics go to stdout in compiler style; everything else is logged to
stderr.  Exit status is 1 if any error-severity diagnostic was reported
or a file could not be analyzed.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from include_cleaner.config import DEFAULT_CONFIG_NAME, load_config, parse_defines
from include_cleaner.diagnostics import Severity
from include_cleaner.front_end import AnalysisError, CFrontEnd, analyze_file

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="include_cleaner",
        description="Report #include directives a C translation unit does not use.",
    )
    parser.add_argument("files", nargs="+", metavar="FILE", help="main files of the units to check")
    parser.add_argument("--root", default=None, help="workspace root (default: current directory)")
    parser.add_argument("-I", dest="include_dirs", action="append", default=[], metavar="DIR",
                        help="add an include directory")
    parser.add_argument("-D", dest="defines", action="append", default=[], metavar="NAME[=VAL]",
                        help="predefine a macro for the preprocessor")
    parser.add_argument("--config", default=None, help=f"JSON config file (default: <root>/{DEFAULT_CONFIG_NAME})")
    parser.add_argument("--Werror", dest="warnings_as_errors", action="store_true",
                        help="report findings as errors")
    parser.add_argument("--no-preprocess", dest="no_preprocess", action="store_true",
                        help="do not evaluate #if/#ifdef; treat every branch as active")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="log analysis details to stderr (repeat for debug)")
    return parser


def _setup_logging(verbosity: int):
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )
    # Diagnostics are the program's output
    diag_logger = logging.getLogger("include_cleaner.diagnostics")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    diag_logger.handlers = [handler]
    diag_logger.propagate = False


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    root = os.path.abspath(args.root or os.getcwd())
    config_path = args.config
    if config_path is None and os.path.isfile(os.path.join(root, DEFAULT_CONFIG_NAME)):
        config_path = os.path.join(root, DEFAULT_CONFIG_NAME)

    config = load_config(
        config_path,
        workspace_root=root,
        warnings_as_errors=True if args.warnings_as_errors else None,
        use_preprocessor=False if args.no_preprocess else None,
    )
    config.include_dirs.extend(args.include_dirs)
    for define in args.defines:
        config.defines.update(parse_defines(define))

    front_end = CFrontEnd(config)
    status = 0
    for path in args.files:
        try:
            result = analyze_file(path, front_end=front_end)
        except AnalysisError as e:
            logger.error("%s", e)
            status = 1
            continue
        if any(d.severity == Severity.ERROR for d in result.diagnostics):
            status = 1
    return status


if __name__ == "__main__":
    sys.exit(main())
