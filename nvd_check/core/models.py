"""
@file models.py
@brief Data models shared by the engine, reports and commands

@details
- Vulnerability: one finding, immutable and hashable so that identical
  findings reported for several dependencies collapse in a set.
- Dependency: one scanned artifact and the findings attached to it.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set


@dataclass(frozen=True)
class Vulnerability:
    """
    A single CVE reported against a dependency.

    Fields:
    - name: CVE identifier (e.g., "CVE-2021-44228")
    - severity: severity label as provided by the feed (e.g., "CRITICAL")
    - cvss_score: base score if known
    - description: short description from the feed
    - source: where the finding came from (e.g., "NVD")
    """
    name: str
    severity: str = "UNKNOWN"
    cvss_score: Optional[float] = None
    description: str = ""
    source: str = "NVD"

    @property
    def url(self):
        return f"https://nvd.nist.gov/vuln/detail/{self.name}"

    def __str__(self):
        return self.name


@dataclass
class Dependency:
    """
    One artifact registered with the engine.

    Fields:
    - file_path: absolute path of the scanned file
    - product / version / vendor: identification evidence set by analyzers
    - evidence: raw key/value evidence (e.g., manifest attributes)
    - vulnerabilities: findings attached during analysis
    """
    file_path: Path
    vendor: Optional[str] = None
    product: Optional[str] = None
    version: Optional[str] = None
    evidence: Dict[str, str] = field(default_factory=dict)
    vulnerabilities: Set[Vulnerability] = field(default_factory=set)

    @property
    def file_name(self):
        return Path(self.file_path).name

    def add_vulnerability(self, vulnerability):
        self.vulnerabilities.add(vulnerability)
