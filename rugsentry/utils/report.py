"""
Report Generation Utilities for RugSentry
CSV, plain-text summary and analyzer performance exports
"""

import csv
import logging
from pathlib import Path
from typing import Optional, Union

from tabulate import tabulate

from ..core.model import SecurityReport
from ..core.result_manager import severity_label


class ReportGenerator:
    """Generate additional report formats from a SecurityReport."""

    def __init__(self, output_dir: Union[str, Path] = "./reports"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger(__name__)

    def generate_csv_report(self, report: SecurityReport, filename: Optional[str] = None) -> str:
        """One row per finding."""
        filepath = self.output_dir / (filename or f"findings_{report.scan_id}.csv")

        columns = [
            "Scan_ID", "Network", "Address", "Category", "Severity", "Severity_Label",
            "Confidence", "Analyzer", "Description", "Evidence", "Mitigation",
        ]
        with open(filepath, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.writer(csvfile)
            writer.writerow(columns)
            for finding in report.findings:
                writer.writerow([
                    report.scan_id,
                    report.target.network,
                    report.target.address,
                    finding.category.value,
                    f"{finding.severity:.1f}",
                    severity_label(finding.severity),
                    f"{finding.confidence:.1f}",
                    finding.adapter_id,
                    finding.description,
                    "; ".join(finding.evidence),
                    finding.mitigation or "",
                ])

        self.logger.info(f"CSV report generated: {filepath}")
        return str(filepath)

    def format_summary(self, report: SecurityReport) -> str:
        """Executive summary as plain text."""
        content = []
        content.append("=" * 70)
        content.append("RUGSENTRY SECURITY SUMMARY REPORT")
        content.append("=" * 70)
        content.append("")
        content.append(f"Scan ID:   {report.scan_id}")
        content.append(f"Analyzed:  {report.analyzed_at}")
        content.append(f"Network:   {report.target.network}")
        content.append(f"Address:   {report.target.address} ({report.target.address_type.value})")
        content.append(f"Profile:   {report.profile}")
        content.append("")

        content.append("VERDICT")
        content.append("-" * 7)
        content.append(f"Risk level:        {report.risk_level.value.upper()}")
        content.append(f"Composite score:   {report.composite_score:.1f} / 100")
        content.append(f"Confidence:        {report.confidence:.0f}%")
        content.append(f"Analyzer coverage: {report.analyzer_coverage:.0%}")
        content.append("")
        content.append(report.summary)
        content.append("")

        if report.category_scores:
            content.append(tabulate(
                sorted(report.category_scores.items()),
                headers=["Category", "Score"],
                tablefmt="simple",
                floatfmt=".1f",
            ))
            content.append("")

        if report.key_findings:
            content.append("KEY FINDINGS")
            content.append("-" * 12)
            for key in report.key_findings:
                content.append(f"* [{key.category.value}] {key.description} "
                               f"(severity {key.severity:.0f}, {key.finding_count} finding(s))")
            content.append("")

        if report.recommendations:
            content.append("RECOMMENDATIONS")
            content.append("-" * 15)
            for i, rec in enumerate(report.recommendations, 1):
                content.append(f"{i}. {rec}")
            content.append("")

        content.append("=" * 70)
        return "\n".join(content)

    def generate_summary_report(self, report: SecurityReport, filename: Optional[str] = None) -> str:
        filepath = self.output_dir / (filename or f"summary_{report.scan_id}.txt")
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.format_summary(report))
        self.logger.info(f"Summary report generated: {filepath}")
        return str(filepath)

    def generate_console_summary(self, report: SecurityReport) -> str:
        """Severity counts and analyzer outcomes as grid tables."""
        severity_counts = {"critical": 0, "high": 0, "medium": 0, "low": 0, "info": 0}
        for finding in report.findings:
            severity_counts[severity_label(finding.severity)] += 1

        severity_table = tabulate(
            [[label.capitalize(), count] for label, count in severity_counts.items()],
            headers=["Severity", "Count"],
            tablefmt="grid",
        )
        return f"{severity_table}\n\n{self.format_adapter_table(report)}"

    def format_adapter_table(self, report: SecurityReport) -> str:
        rows = [
            [
                a.get("adapter_id"),
                a.get("category"),
                a.get("status"),
                "-" if a.get("sub_score") is None else f"{a['sub_score']:.1f}",
                f"{a.get('latency_ms', 0):.0f}",
                a.get("error") or "",
            ]
            for a in report.adapters
        ]
        return tabulate(
            rows,
            headers=["Analyzer", "Category", "Status", "Sub-score", "Latency (ms)", "Error"],
            tablefmt="grid",
        )
