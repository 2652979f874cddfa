"""
@file commands.py
@brief check, update and purge operations

Each operation reads one configuration document, builds its own Settings,
and releases everything it acquired before returning or raising.

@details
- check(): scan the classpath, write reports, print and return findings
- update_database(): refresh the local store from the NVD, no scan
- purge_database(): delete the local store file (idempotent)
- exit_status(): map findings to the process exit code
"""

import atexit
import logging
import os

from nvd_check.caching import cache_db
from nvd_check.caching.constants import EXIT_OK, EXIT_VULNERABILITIES_FOUND
from nvd_check.core.engine import engine_session, scan_and_analyze, vulnerabilities
from nvd_check.core.errors import NvdCheckError, StoreAccessError, UpdateError
from nvd_check.core.settings import app_label, classpath, populate_settings, read_opts, report_options
from nvd_check.reporting import output_formatter as fmt
from nvd_check.reporting.report_generator import generate_report

logger = logging.getLogger(__name__)


def _delete_file(path):
    if os.path.exists(path):
        os.remove(path)
        logger.debug(f"Deleted {path}")


def delete_on_exit(path):
    """Remove path when the interpreter exits."""
    atexit.register(_delete_file, os.path.abspath(path))


def update_database(config_file, engine_factory=None):
    """
    Download the latest data from the National Vulnerability Database (NVD)
    and store a copy in the local database.

    @throws UpdateError if the feed cannot be reached or the store not written
    """
    project = read_opts(config_file)
    settings = populate_settings(project)
    with engine_session(settings, engine_factory) as engine:
        logger.info("Updating local vulnerability database")
        try:
            engine.update_database()
        except NvdCheckError:
            raise
        except Exception as e:
            raise UpdateError(f"Unable to update the vulnerability database: {e}") from e
    logger.info("Local vulnerability database update finished")


def purge_database(config_file):
    """
    Remove the local copy of the NVD.

    @return bool True if a store file was deleted, False if there was none

    @details
    A missing store is not an error, so calling this twice is safe.
    Must not run while an update or check is using the same data directory.
    """
    project = read_opts(config_file)
    settings = populate_settings(project)
    try:
        db = cache_db.db_path_for(settings.data_directory)
        if not os.path.exists(db):
            logger.info(f"No database file at {db}, nothing to purge")
            return False
        try:
            os.remove(db)
        except OSError as e:
            raise StoreAccessError(f"Unable to delete database file {db}: {e}") from e
        fmt.print_success("Database file purged; local copy of the NVD has been removed")
        logger.info(f"Flushed: {db}")
        return True
    finally:
        settings.cleanup()


def check(config_file, engine_factory=None):
    """
    Check a project's classpath for known vulnerabilities.

    @param config_file str JSON configuration document; deleted at process exit
    @param engine_factory callable Settings -> Engine (default: bundled NvdEngine)

    @return set Vulnerability findings across all dependencies

    @details
    Workflow:
    1. Read and normalize the configuration
    2. Create the engine, scan every .jar on the classpath and analyze
    3. Write reports to nvd/output-dir (default target/nvd) in
       nvd/output-format (default ALL)
    4. Print one line per finding
    The engine and settings are released before this returns or raises.

    @throws ConfigError before any engine is created if classpath, output-dir
            or output-format have the wrong type
    """
    project = read_opts(config_file)
    entries = classpath(project)
    output_dir, output_format = report_options(project)
    settings = populate_settings(project)
    label = app_label(project)

    with engine_session(settings, engine_factory) as engine:
        fmt.print_checking(label)
        logger.info(f"Checking dependencies for {label}")
        delete_on_exit(config_file)

        scan_and_analyze(engine, entries)
        generate_report(engine, label, output_dir, output_format, settings)

        findings = vulnerabilities(engine)
        for vulnerability in sorted(findings, key=lambda v: v.name):
            fmt.print_vulnerability(vulnerability)
        fmt.print_stats(len(engine.dependencies()), len(findings))

    if findings:
        logger.warning(f"{len(findings)} vulnerabilities found in {label}")
    else:
        logger.info(f"No vulnerabilities found in {label}")
    return findings


def exit_status(findings):
    """
    Process exit code for the outcome of a check.

    @param findings set Vulnerabilities returned by check()

    @return int EXIT_VULNERABILITIES_FOUND when any were found, else EXIT_OK
    """
    return EXIT_VULNERABILITIES_FOUND if findings else EXIT_OK
