"""Report renderer — produces the markdown shown in the report viewer."""

from __future__ import annotations

from guardian.models.report import AuditReport, AuditStatus, GroundingReference

STATUS_LABELS = {
    AuditStatus.COMPLIANT: "적합 (Compliant)",
    AuditStatus.VIOLATION: "위반 (Violation)",
    AuditStatus.UNCERTAIN: "판단 불가 / 주의",
}


class ReportRenderer:
    """Renders an AuditReport as a single markdown document."""

    def render(self, report: AuditReport) -> str:
        lines: list[str] = [report.raw_markdown.rstrip()]

        if report.grounding_urls:
            lines.append("")
            lines.append("---")
            lines.append("")
            lines.append("#### Source References")
            lines.append("")
            for reference in report.grounding_urls:
                lines.append(self._render_reference(reference))

        return "\n".join(lines) + "\n"

    def label(self, status: AuditStatus) -> str:
        return STATUS_LABELS[status]

    def _render_reference(self, reference: GroundingReference) -> str:
        return f"- [{self._escape(reference.title)}]({reference.uri})"

    def _escape(self, text: str) -> str:
        """Escape characters that would break a markdown link label."""
        return text.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")
