"""
@file report_generator.py
@brief Dependency check report generation in XML, HTML, JSON and CSV

Renders the findings of every analyzed dependency against an application
label into an output directory.

@details
**Formats:**
- HTML, XML: Jinja2 templates shipped in reporting/templates
- JSON: json.dumps of the report structure
- CSV: one row per (dependency, vulnerability)
- ALL: every format above

Files are named dependency-check-report.<ext>.

**Report Format (JSON):**

```json
{
  "application": "org.example/libfoo 1.0",
  "timestamp": "2026-01-06T12:00:00",
  "analyzers": ["Jar Analyzer", "CPE Analyzer"],
  "database": {"last_updated": "2026-01-06T08:00:00"},
  "statistics": {"dependencies": 2, "vulnerable_dependencies": 1, "vulnerabilities": 1,
                 "severity_breakdown": {"CRITICAL": 1}},
  "dependencies": [
    {
      "file_name": "log4j-core-2.14.1.jar",
      "file_path": "/path/to/log4j-core-2.14.1.jar",
      "product": "log4j-core",
      "version": "2.14.1",
      "vendor": null,
      "evidence": {"file.product": "log4j-core"},
      "vulnerabilities": [
        {"name": "CVE-2021-44228", "severity": "CRITICAL", "cvss_score": 10.0,
         "description": "...", "source": "NVD",
         "url": "https://nvd.nist.gov/vuln/detail/CVE-2021-44228"}
      ]
    }
  ]
}
```
"""

import csv
import json
import logging
import os
import sqlite3
from collections import defaultdict
from datetime import datetime
from enum import Enum

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from nvd_check.caching import cache_db
from nvd_check.caching.constants import REPORT_BASENAME
from nvd_check.core.errors import ReportError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")


class ReportFormat(Enum):
    XML = "xml"
    HTML = "html"
    JSON = "json"
    CSV = "csv"
    ALL = "all"

    @classmethod
    def parse(cls, value):
        """Case-insensitive lookup by name; ReportError for unknown formats."""
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            supported = ", ".join(f.name for f in cls)
            raise ReportError(f"Unsupported report format '{value}' (supported: {supported})") from None

    def expand(self):
        if self is ReportFormat.ALL:
            return [f for f in ReportFormat if f is not ReportFormat.ALL]
        return [self]


def _vulnerability_entry(vulnerability):
    return {
        "name": vulnerability.name,
        "severity": vulnerability.severity,
        "cvss_score": vulnerability.cvss_score,
        "description": vulnerability.description,
        "source": vulnerability.source,
        "url": vulnerability.url,
    }


class ReportGenerator:
    """
    @class ReportGenerator
    @brief Builds the report structure once and writes it in each format
    """

    def __init__(self, application_name, dependencies, analyzers, properties=None):
        self.application_name = application_name
        self.dependencies = list(dependencies)
        self.analyzers = list(analyzers)
        self.properties = dict(properties or {})
        self.environment = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def build_report_data(self):
        severity_breakdown = defaultdict(int)
        dependencies = []
        vulnerable = 0
        total = 0

        for dependency in sorted(self.dependencies, key=lambda d: d.file_name):
            vulns = sorted(dependency.vulnerabilities, key=lambda v: v.name)
            if vulns:
                vulnerable += 1
            total += len(vulns)
            for vuln in vulns:
                severity_breakdown[vuln.severity] += 1
            dependencies.append({
                "file_name": dependency.file_name,
                "file_path": str(dependency.file_path),
                "product": dependency.product,
                "version": dependency.version,
                "vendor": dependency.vendor,
                "evidence": dict(dependency.evidence),
                "vulnerabilities": [_vulnerability_entry(v) for v in vulns],
            })

        return {
            "application": self.application_name,
            "timestamp": datetime.now().isoformat(timespec="seconds"),
            "analyzers": self.analyzers,
            "database": self.properties,
            "statistics": {
                "dependencies": len(dependencies),
                "vulnerable_dependencies": vulnerable,
                "vulnerabilities": total,
                "severity_breakdown": dict(severity_breakdown),
            },
            "dependencies": dependencies,
        }

    def _write_template(self, report, template_name, path):
        template = self.environment.get_template(template_name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(template.render(report=report))

    def _write_json(self, report, path):
        with open(path, "w", encoding="utf-8") as f:
            f.write(json.dumps(report, indent=2))

    def _write_csv(self, report, path):
        with open(path, "w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["Project", "DependencyName", "DependencyPath", "Product", "Version",
                             "CVE", "Severity", "CVSSScore", "Description"])
            for dependency in report["dependencies"]:
                for vuln in dependency["vulnerabilities"]:
                    writer.writerow([report["application"], dependency["file_name"], dependency["file_path"],
                                     dependency["product"], dependency["version"], vuln["name"],
                                     vuln["severity"], vuln["cvss_score"], vuln["description"]])

    def generate_reports(self, output_dir, output_format="ALL"):
        """
        Write reports for the requested format(s).

        @param output_dir str Directory to write into (created if missing)
        @param output_format str or ReportFormat One of XML, HTML, JSON, CSV, ALL

        @return list Paths of the written files

        @throws ReportError for unknown formats, unwritable directories or
                template failures
        """
        formats = ReportFormat.parse(output_format).expand()
        report = self.build_report_data()

        written = []
        try:
            os.makedirs(output_dir, exist_ok=True)
            for fmt in formats:
                path = os.path.join(str(output_dir), f"{REPORT_BASENAME}.{fmt.value}")
                if fmt is ReportFormat.JSON:
                    self._write_json(report, path)
                elif fmt is ReportFormat.CSV:
                    self._write_csv(report, path)
                else:
                    self._write_template(report, f"report.{fmt.value}", path)
                written.append(path)
                logger.info(f"{fmt.name} report written: {path}")
        except (OSError, TemplateError) as e:
            raise ReportError(f"Unable to write reports to {output_dir}: {e}") from e
        return written


def database_properties(settings):
    """Properties of the local store for the report header, {} if it does not exist."""
    if settings is None:
        return {}
    try:
        return cache_db.read_properties(cache_db.db_path_for(settings.data_directory))
    except sqlite3.Error as e:
        raise ReportError(f"Unable to read vulnerability store properties: {e}") from e


def generate_report(engine, app_label, output_dir, output_format, settings=None):
    """
    Ask for reports of every dependency known to the engine.

    @param engine Engine Analyzed engine
    @param app_label str "<app name> <version>"
    @param output_dir str Destination directory
    @param output_format str Report format name
    @param settings Settings Used to locate the local store (optional)

    @return list Paths of the written files
    """
    generator = ReportGenerator(
        app_label,
        engine.dependencies(),
        engine.analyzers(),
        database_properties(settings),
    )
    return generator.generate_reports(output_dir, output_format)
