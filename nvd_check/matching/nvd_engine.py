"""
@file nvd_engine.py
@brief Bundled analysis engine backed by the local NVD store

@details
Implements the Engine protocol from core/engine.py:
- scan(path): register an artifact as a Dependency
- analyze(): optionally refresh the store (autoupdate), then run analyzers
- update_database(): refresh the store from the NVD through nvdlib
- close(): release the store connection

Connection timeout is read from database.connection.timeout (milliseconds).
"""

import logging
from pathlib import Path

from nvd_check.caching import cache_db
from nvd_check.caching.constants import NVD_API_KEY
from nvd_check.core.models import Dependency
from nvd_check.core.settings import Keys
from nvd_check.matching.analyzers import build_analyzers

logger = logging.getLogger(__name__)


class NvdEngine:
    """
    @class NvdEngine
    @brief Scans jar files and matches them against the local store
    """

    def __init__(self, settings, api_key=NVD_API_KEY):
        self.settings = settings
        self.api_key = api_key
        self.db = None
        self._dependencies = []
        self._analyzers = build_analyzers(settings)

    @property
    def db_path(self):
        return cache_db.db_path_for(self.settings.data_directory)

    @property
    def timeout(self):
        return self.settings.get_int(Keys.CONNECTION_TIMEOUT, 10000) / 1000.0

    def scan(self, path):
        file_path = Path(path).expanduser().resolve()
        if not file_path.is_file():
            logger.warning(f"Skipping {path}: not a file")
            return None
        dependency = Dependency(file_path=file_path)
        self._dependencies.append(dependency)
        logger.debug(f"Registered dependency {file_path}")
        return dependency

    def analyze(self):
        if self.settings.get_boolean(Keys.AUTO_UPDATE, True):
            self.update_database()
        if self.db is None:
            self.db = cache_db.get_db(self.db_path, self.timeout)
        for analyzer in self._analyzers:
            logger.debug(f"Running {analyzer.name}")
            for dependency in self._dependencies:
                analyzer.analyze(dependency, self)

    def dependencies(self):
        return list(self._dependencies)

    def analyzers(self):
        return [analyzer.name for analyzer in self._analyzers]

    def update_database(self):
        return cache_db.sync_modified_cves(
            self.db_path,
            api_key=self.api_key,
            valid_for_hours=self.settings.get_int(Keys.CVE_CHECK_VALID_FOR_HOURS, 4),
            timeout=self.timeout,
        )

    def close(self):
        if self.db is not None:
            self.db.close()
            self.db = None
            logger.debug("Closed store connection")
