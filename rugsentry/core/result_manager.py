"""
Result Manager for RugSentry
Stores security reports as JSON, renders HTML reports and lists scan history
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from jinja2 import Template

from .model import RiskLevel, SecurityReport, ThreatFinding

SEVERITY_BANDS = (
    (90.0, "critical"),
    (70.0, "high"),
    (40.0, "medium"),
    (20.0, "low"),
)

RISK_COLORS = {
    RiskLevel.CRITICAL.value: "#d32f2f",
    RiskLevel.HIGH.value: "#f57c00",
    RiskLevel.MEDIUM.value: "#fbc02d",
    RiskLevel.LOW.value: "#388e3c",
    RiskLevel.MINIMAL.value: "#1976d2",
    RiskLevel.UNKNOWN.value: "#757575",
}


def severity_label(severity: float) -> str:
    """Bucket a 0-100 severity for display."""
    for floor, label in SEVERITY_BANDS:
        if severity >= floor:
            return label
    return "info"


HTML_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <title>RugSentry Report - {{ report.target.address }}</title>
    <meta charset="utf-8">
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; background-color: #f5f5f5; }
        .header { background: linear-gradient(135deg, #263238 0%, #455a64 100%); color: white; padding: 20px; border-radius: 10px; margin-bottom: 20px; }
        .summary { display: grid; grid-template-columns: repeat(auto-fit, minmax(250px, 1fr)); gap: 20px; margin-bottom: 30px; }
        .card { background: white; padding: 20px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
        .finding { background: white; margin: 10px 0; padding: 15px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); border-left: 4px solid #ccc; }
        .critical { border-left-color: #d32f2f; }
        .high { border-left-color: #f57c00; }
        .medium { border-left-color: #fbc02d; }
        .low { border-left-color: #388e3c; }
        .info { border-left-color: #1976d2; }
        .risk-badge { padding: 4px 12px; border-radius: 4px; color: white; font-weight: bold; }
        .evidence { background: #f8f9fa; padding: 10px; border-radius: 4px; margin-top: 10px; font-family: monospace; font-size: 12px; }
        .recommendation { background: #e8f5e8; padding: 10px; border-radius: 4px; margin-top: 10px; }
        table { border-collapse: collapse; width: 100%; }
        td, th { text-align: left; padding: 6px; border-bottom: 1px solid #eee; }
    </style>
</head>
<body>
    <div class="header">
        <h1>RugSentry Security Report</h1>
        <p>{{ report.target.network }} | {{ report.target.address }} ({{ report.target.address_type.value }})</p>
        <p>Scan {{ report.scan_id }} | {{ report.analyzed_at }} | Profile: {{ report.profile }}</p>
    </div>

    <div class="summary">
        <div class="card">
            <h3>Verdict</h3>
            <p><span class="risk-badge" style="background-color: {{ risk_color }};">{{ report.risk_level.value.upper() }}</span></p>
            <p><strong>Composite score:</strong> {{ "%.1f"|format(report.composite_score) }} / 100</p>
            <p><strong>Confidence:</strong> {{ "%.0f"|format(report.confidence) }}%</p>
            <p><strong>Analyzer coverage:</strong> {{ "%.0f"|format(report.analyzer_coverage * 100) }}%</p>
        </div>

        <div class="card">
            <h3>Category Scores</h3>
            {% for category, score in report.category_scores.items() %}
            <p><strong>{{ category|capitalize }}:</strong> {{ "%.1f"|format(score) }}</p>
            {% else %}
            <p>No category produced a score.</p>
            {% endfor %}
        </div>

        <div class="card">
            <h3>Findings by Severity</h3>
            {% for label, count in summary.by_severity.items() %}
            <p>{{ label|capitalize }}: {{ count }}</p>
            {% endfor %}
        </div>
    </div>

    <div class="card">
        <h3>Summary</h3>
        <p>{{ report.summary }}</p>
        {% if report.recommendations %}
        <div class="recommendation">
            <h4>Recommendations</h4>
            <ol>
            {% for rec in report.recommendations %}<li>{{ rec }}</li>{% endfor %}
            </ol>
        </div>
        {% endif %}
    </div>

    <h2>Detailed Findings</h2>
    {% for finding in report.findings %}
    <div class="finding {{ severity_label(finding.severity) }}">
        <h3>{{ finding.description }}</h3>
        <p><strong>Category:</strong> {{ finding.category.value }} | <strong>Severity:</strong> {{ "%.0f"|format(finding.severity) }} | <strong>Confidence:</strong> {{ "%.0f"|format(finding.confidence) }}% | <strong>Analyzer:</strong> {{ finding.adapter_id }}</p>
        {% if finding.evidence %}
        <div class="evidence">{% for item in finding.evidence %}{{ item }}<br>{% endfor %}</div>
        {% endif %}
        {% if finding.mitigation %}
        <div class="recommendation"><strong>Mitigation:</strong> {{ finding.mitigation }}</div>
        {% endif %}
    </div>
    {% else %}
    <p>No findings.</p>
    {% endfor %}

    <h2>Analyzers</h2>
    <table>
        <tr><th>Analyzer</th><th>Category</th><th>Status</th><th>Sub-score</th><th>Latency</th><th>Error</th></tr>
        {% for a in report.adapters %}
        <tr>
            <td>{{ a.adapter_id }}</td><td>{{ a.category }}</td><td>{{ a.status }}</td>
            <td>{{ a.sub_score if a.sub_score is not none else "-" }}</td>
            <td>{{ a.latency_ms }} ms</td><td>{{ a.error or "" }}</td>
        </tr>
        {% endfor %}
    </table>

    <div style="margin-top: 40px; padding: 20px; background: #f8f9fa; border-radius: 8px; text-align: center;">
        <p><strong>RugSentry {{ report.engine_version }}</strong></p>
        <p>Automated risk assessment, not financial advice.</p>
    </div>
</body>
</html>
"""


class ResultManager:
    """Persists SecurityReports and renders them for people."""

    def __init__(self, output_dir: Union[str, Path] = "./reports"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger(__name__)

        (self.output_dir / "json").mkdir(exist_ok=True)
        (self.output_dir / "html").mkdir(exist_ok=True)

    def report_path(self, scan_id: str, fmt: str = "json") -> Path:
        return self.output_dir / fmt / f"{scan_id}.{fmt}"

    def save_report(self, report: SecurityReport) -> str:
        """Save a report as JSON, named by its scan id."""
        filepath = self.report_path(report.scan_id, "json")
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
        self.logger.info(f"Report saved to: {filepath}")
        return str(filepath)

    def get_findings_summary(self, findings: Iterable[ThreatFinding]) -> Dict[str, Any]:
        summary: Dict[str, Any] = {
            "total": 0,
            "by_severity": {"critical": 0, "high": 0, "medium": 0, "low": 0, "info": 0},
            "by_category": {},
            "by_adapter": {},
        }
        for finding in findings:
            summary["total"] += 1
            summary["by_severity"][severity_label(finding.severity)] += 1
            category = finding.category.value
            summary["by_category"][category] = summary["by_category"].get(category, 0) + 1
            adapter = finding.adapter_id or "unknown"
            summary["by_adapter"][adapter] = summary["by_adapter"].get(adapter, 0) + 1
        return summary

    def generate_html_report(self, report: SecurityReport) -> str:
        filepath = self.report_path(report.scan_id, "html")
        template = Template(HTML_TEMPLATE)
        html_content = template.render(
            report=report,
            summary=self.get_findings_summary(report.findings),
            risk_color=RISK_COLORS.get(report.risk_level.value, "#757575"),
            severity_label=severity_label,
        )
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(html_content)
        self.logger.info(f"HTML report generated: {filepath}")
        return str(filepath)

    def generate_reports(self, report: SecurityReport, formats: Iterable[str] = ("json", "html")) -> Dict[str, str]:
        """Write the requested formats; returns {format: path}."""
        writers = {
            "json": self.save_report,
            "html": self.generate_html_report,
        }
        reports = {}
        for fmt in formats:
            writer = writers.get(fmt)
            if writer is None:
                raise ValueError(f"Unsupported report format: {fmt}")
            reports[fmt] = writer(report)
        self.logger.info(f"Generated {len(reports)} reports for scan {report.scan_id}")
        return reports

    def load_report(self, source: Union[str, Path]) -> SecurityReport:
        """Load a report by file path or by scan id."""
        filepath = Path(source)
        if not filepath.exists():
            filepath = self.report_path(str(source), "json")
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
        report = SecurityReport.from_dict(data)
        self.logger.debug(f"Loaded report {report.scan_id} from {filepath}")
        return report

    def list_history(self,
                     limit: Optional[int] = None,
                     network: Optional[str] = None,
                     address: Optional[str] = None) -> List[Dict[str, Any]]:
        """Newest-first summaries of stored reports."""
        entries = []
        for filepath in (self.output_dir / "json").glob("*.json"):
            try:
                with open(filepath, "r", encoding="utf-8") as f:
                    data = json.load(f)
                target = data["target"]
                entry = {
                    "scan_id": data["scan_id"],
                    "network": target["network"],
                    "address": target["address"],
                    "risk_level": data["risk_level"],
                    "composite_score": data["composite_score"],
                    "confidence": data["confidence"],
                    "analyzed_at": data["analyzed_at"],
                    "path": str(filepath),
                }
            except (OSError, ValueError, KeyError) as e:
                self.logger.warning(f"Skipping unreadable report {filepath}: {e}")
                continue
            if network and entry["network"] != network:
                continue
            if address and entry["address"].lower() != address.lower():
                continue
            entries.append(entry)

        entries.sort(key=lambda e: e["analyzed_at"], reverse=True)
        return entries[:limit] if limit else entries
