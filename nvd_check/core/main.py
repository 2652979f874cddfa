"""
@file main.py
@brief Command-line entry point for the dependency check

Subcommands:
1. check CONFIG_FILE  - scan the classpath, write reports, fail on findings
2. update CONFIG_FILE - refresh the local NVD store
3. purge CONFIG_FILE  - delete the local NVD store

@details
Exit codes:
- 0: success, no vulnerabilities
- 1: operational error (configuration, engine, store, reports)
- 2: invalid command line (argparse)
- 255: vulnerabilities found

Every run logs to logs/vulnerability_check_<timestamp>.log (directory
overridable with NVD_CHECK_LOG_DIR).
"""

import argparse
import logging
import os
import sys
from datetime import datetime

from nvd_check import __version__
from nvd_check.caching.constants import EXIT_ERROR, EXIT_OK, LOG_DIR
from nvd_check.core import commands
from nvd_check.core.errors import NvdCheckError
from nvd_check.reporting import output_formatter as fmt

logger = logging.getLogger(__name__)


def configure_logging(log_dir=LOG_DIR):
    """
    Send all log records to a timestamped file under log_dir.

    @return str Path of the log file
    """
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    log_filename = os.path.join(log_dir, f"vulnerability_check_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log")
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        handlers=[
            logging.FileHandler(log_filename)
        ]
    )
    return log_filename


def parse_arguments(argv=None):
    """
    Parse the subcommand and configuration file path.

    @return argparse.Namespace with attributes command and config_file
    """
    parser = argparse.ArgumentParser(
        prog="nvd-check",
        description="Check project dependencies for known vulnerabilities using the NVD"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Scan the classpath and report vulnerabilities")
    check.add_argument("config_file", help="JSON configuration file (deleted when the check exits)")

    update = sub.add_parser("update", help="Download the latest NVD data into the local database")
    update.add_argument("config_file", help="JSON configuration file")

    purge = sub.add_parser("purge", help="Remove the local copy of the NVD")
    purge.add_argument("config_file", help="JSON configuration file")

    return parser.parse_args(argv)


def main(argv=None):
    """
    Run one subcommand.

    @return int Exit code (see module docstring)
    """
    args = parse_arguments(argv)
    log_filename = configure_logging()

    logger.info("=" * 70)
    logger.info(f"Starting {args.command}")
    logger.info(f"Log file: {log_filename}")
    logger.info(f"Configuration file: {args.config_file}")

    try:
        if args.command == "check":
            findings = commands.check(args.config_file)
            status = commands.exit_status(findings)
        elif args.command == "update":
            commands.update_database(args.config_file)
            fmt.print_success("Local NVD database is up to date")
            status = EXIT_OK
        else:
            commands.purge_database(args.config_file)
            status = EXIT_OK
    except NvdCheckError as e:
        fmt.print_error(str(e))
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        status = EXIT_ERROR

    logger.info(f"{args.command} finished with exit code {status}")
    logger.info("=" * 70)
    return status


if __name__ == "__main__":
    sys.exit(main())
