"""Argument parsing functionality for spm."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="spm",
        description=(
            "spm - resolve, deduplicate and install the dependencies of an spm-package.json"
        ),
        add_help=True,
    )

    parser.add_argument("cwd",
                        nargs="?",
                        help="Directory holding spm-package.json (default: current directory)",
                        type=str)
    parser.add_argument("dest",
                        nargs="?",
                        help="Install destination (default: the working directory)",
                        type=str)

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to YAML configuration file",
                        action="store",
                        type=str)
    parser.add_argument("--registry",
                        dest="REGISTRY",
                        help="Registry base URL (overrides config and SPM_REGISTRY_URL)",
                        action="store",
                        type=str)
    parser.add_argument("--ignore-scripts",
                        dest="IGNORE_SCRIPTS",
                        help="Do not run preinstall/install/postinstall scripts.",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Only report warnings and errors.",
                        action="store_true")

    return parser.parse_args(argv)
