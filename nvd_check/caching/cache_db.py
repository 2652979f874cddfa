"""
@file cache_db.py
@brief Local NVD vulnerability store (SQLite)

Implements the file-backed store read by the bundled engine during analysis
and refreshed from the NVD 2.0 API through nvdlib.

Database Schema:
- properties: key/value metadata (last_updated timestamp, record counts)
- vulnerabilities: one row per (CVE, vulnerable CPE) with the CPE split
  into vendor/product/version for lookup

@details
The store lives at <data-directory>/nvdcve.db. Every function opens and
closes its own connection; nothing here holds the file open between calls.
There is no cross-process locking beyond SQLite's own: update, purge and
check must not run concurrently against the same data directory.

**Update strategy:**
1. If the last update is younger than the validity window, do nothing
2. Empty store: download every CVE
3. Otherwise: download CVEs modified since the last update, in windows of
   at most 120 days (NVD API limit)
4. Upsert each vulnerable CPE match and record the new last_updated
"""

import logging
import os
import sqlite3
from datetime import datetime, timedelta

import nvdlib

from nvd_check.caching.constants import API_REQUEST_DELAY, DB_FILENAME, MAX_UPDATE_WINDOW_DAYS

logger = logging.getLogger(__name__)

LAST_UPDATED = "last_updated"


def db_path_for(data_directory):
    """
    @param data_directory str or Path Directory holding the local store

    @return str Path of the SQLite store file inside it
    """
    return os.path.join(str(data_directory), DB_FILENAME)


# --- DATABASE SETUP ---
def get_db(db_path, timeout=10.0):
    """
    Open the store, creating the file and schema if needed.

    @param db_path str Path to the SQLite file
    @param timeout float Seconds to wait for a lock held by another connection

    @return sqlite3.Connection Connection with both tables created
    """
    directory = os.path.dirname(db_path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory)
        logger.info(f"Created data directory: {directory}")

    conn = sqlite3.connect(db_path, timeout=timeout)
    cursor = conn.cursor()
    cursor.execute('''CREATE TABLE IF NOT EXISTS properties
                      (key TEXT PRIMARY KEY, value TEXT)''')
    cursor.execute('''CREATE TABLE IF NOT EXISTS vulnerabilities
                      (cve_id TEXT, cpe_string TEXT, vendor TEXT, product TEXT, version TEXT,
                       description TEXT, severity TEXT, score REAL, published_date TEXT,
                       PRIMARY KEY (cve_id, cpe_string))''')
    cursor.execute('''CREATE INDEX IF NOT EXISTS idx_vulnerabilities_product
                      ON vulnerabilities (product, version)''')
    conn.commit()
    return conn


def get_properties(conn):
    """
    Read the store metadata (e.g. last_updated).

    @param conn sqlite3.Connection Open store connection

    @return dict Property name -> string value
    """
    cursor = conn.execute("SELECT key, value FROM properties")
    return dict(cursor.fetchall())


def set_property(conn, key, value):
    """
    Insert or replace one metadata entry. The caller commits.

    @param conn sqlite3.Connection Open store connection
    @param key str Property name
    @param value any Stored as its string form
    """
    conn.execute("INSERT OR REPLACE INTO properties (key, value) VALUES (?, ?)", (key, str(value)))


def read_properties(db_path, timeout=10.0):
    """Properties of an existing store, or {} when the file does not exist."""
    if not os.path.exists(db_path):
        return {}
    db = get_db(db_path, timeout)
    try:
        return get_properties(db)
    finally:
        db.close()


def normalize_product(product):
    return (product or "").strip().lower().replace("-", "_")


def split_cpe(cpe_string):
    """
    Extract (vendor, product, version) from a CPE 2.3 string.

    @return tuple or None if the string is not a CPE 2.3 identifier
    """
    if not isinstance(cpe_string, str) or not cpe_string.startswith("cpe:2.3:"):
        return None
    parts = cpe_string.split(":")
    if len(parts) < 6:
        return None
    return parts[3], normalize_product(parts[4]), parts[5]


def _cve_score(cve):
    # nvdlib: cve.score == [version, score, severity], any of which may be None
    score = getattr(cve, "score", None) or [None, None, None]
    severity = score[2] if len(score) > 2 and score[2] else "UNKNOWN"
    value = score[1] if len(score) > 1 else None
    return severity, value


def store_cve(conn, cve):
    """
    Upsert one nvdlib CVE object; returns the number of CPE rows written.
    """
    description = cve.descriptions[0].value if getattr(cve, "descriptions", None) else "No description"
    published_date = getattr(cve, "published", None)
    severity, score = _cve_score(cve)

    written = 0
    for match in getattr(cve, "cpe", None) or []:
        if not getattr(match, "vulnerable", True):
            continue
        cpe_string = getattr(match, "criteria", None)
        split = split_cpe(cpe_string)
        if split is None:
            logger.debug(f"Skipping unparseable CPE for {cve.id}: {cpe_string}")
            continue
        vendor, product, version = split
        conn.execute('''INSERT OR REPLACE INTO vulnerabilities
                        (cve_id, cpe_string, vendor, product, version, description, severity, score, published_date)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)''',
                     (cve.id, cpe_string, vendor, product, version, description, severity, score, published_date))
        written += 1
    return written


def find_vulnerabilities(conn, product, version):
    """
    Look up CVEs recorded for an exact product/version.

    @return list of (cve_id, description, severity, score) tuples
    """
    cursor = conn.execute('''SELECT DISTINCT cve_id, description, severity, score FROM vulnerabilities
                             WHERE product = ? AND version = ? ORDER BY cve_id''',
                          (normalize_product(product), str(version)))
    return cursor.fetchall()


def _update_windows(start, end):
    step = timedelta(days=MAX_UPDATE_WINDOW_DAYS)
    while start < end:
        window_end = min(start + step, end)
        yield start, window_end
        start = window_end


def sync_modified_cves(db_path, api_key=None, valid_for_hours=4, timeout=10.0, delay=None, now=None):
    """
    Bring the local store up to date with the NVD.

    @param db_path str Path to the SQLite file
    @param api_key str NVD API key for higher rate limits (optional)
    @param valid_for_hours int Skip the update if the last one is younger than this
    @param timeout float SQLite busy timeout in seconds
    @param delay float Seconds between NVD requests (default from constants)
    @param now datetime Reference time (default: datetime.now())

    @return int Number of CVEs downloaded (0 when the store is still valid)

    @details
    Network and API errors from nvdlib are not caught here; nothing is
    committed unless every request succeeded.
    """
    now = now or datetime.now()
    delay = API_REQUEST_DELAY if delay is None else delay

    db = get_db(db_path, timeout)
    try:
        last_updated = get_properties(db).get(LAST_UPDATED)
        if last_updated:
            last_updated = datetime.fromisoformat(last_updated)
            if now - last_updated < timedelta(hours=valid_for_hours):
                logger.info(f"Local NVD data is recent ({last_updated}), skipping update")
                return 0

        updates = []
        if not last_updated:
            logger.info("Local store is empty, downloading all CVEs from NVD...")
            updates.extend(nvdlib.searchCVE(key=api_key, delay=delay))
        else:
            for start, end in _update_windows(last_updated, now):
                logger.info(f"Checking NVD for changes between {start} and {end}...")
                updates.extend(nvdlib.searchCVE(lastModStartDate=start, lastModEndDate=end,
                                                key=api_key, delay=delay))

        rows = 0
        for cve in updates:
            rows += store_cve(db, cve)
        set_property(db, LAST_UPDATED, now.isoformat())
        db.commit()
        logger.info(f"Synced {len(updates)} CVEs from NVD ({rows} CPE entries)")
        return len(updates)
    finally:
        db.close()
        logger.debug("Closed database connection for CVE sync")
