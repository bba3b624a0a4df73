"""
SysVital PDF Report Generator
Health report export with color-coded domain scores.
"""
from typing import Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from sysvital.core.models import Priority, SystemAnalysisReport


def _latin1(text: str) -> str:
    # Las fuentes estándar de FPDF solo admiten latin-1
    return str(text).encode("latin-1", "replace").decode("latin-1")


def _score_color(score: int) -> Tuple[int, int, int]:
    if score >= 80:
        return 39, 174, 96
    if score >= 60:
        return 230, 126, 34
    return 192, 57, 43


class PDFReport(FPDF):
    """Custom PDF template with standardized header and footer."""

    def header(self) -> None:
        self.set_font('Helvetica', 'B', 15)
        self.cell(0, 10, 'SysVital - System Health Report', align='C', new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(5)
        self.set_line_width(0.5)
        self.line(10, 25, 200, 25)

    def footer(self) -> None:
        self.set_y(-15)
        self.set_font('Helvetica', 'I', 8)
        self.cell(0, 10, f'Page {self.page_no()}', align='C')

    def line_text(self, text: str, height: float = 7) -> None:
        self.multi_cell(0, height, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def generate_pdf(report: SystemAnalysisReport, filename: str = "sysvital_report.pdf") -> Tuple[bool, str]:
    """
    Render an analysis report to PDF.

    Args:
        report: Report returned by SystemAnalyzer.analyze_system
        filename: Output file path

    Returns:
        Tuple[bool, str]: (success_status, output_path_or_error)
    """
    pdf = PDFReport()
    pdf.add_page()

    pdf.set_font("Helvetica", 'B', 12)
    pdf.line_text(f"Generated: {report.timestamp.strftime('%Y-%m-%d %H:%M:%S')}", 10)
    r, g, b = _score_color(report.overall_health_score)
    pdf.set_text_color(r, g, b)
    pdf.line_text(f"Overall Health Score: {report.overall_health_score}/100", 10)
    pdf.set_text_color(0, 0, 0)
    pdf.set_font("Helvetica", size=10)
    pdf.line_text(report.summary)
    pdf.ln(5)

    # --- DOMINIOS ---
    pdf.set_fill_color(52, 152, 219)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font("Helvetica", 'B', 10)
    pdf.cell(40, 10, "Domain", border=1, align='C', fill=True)
    pdf.cell(25, 10, "Score", border=1, align='C', fill=True)
    pdf.cell(125, 10, "Issues", border=1, align='C', fill=True, new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.set_font("Helvetica", size=9)
    for name, domain in report.domains.items():
        issues = "; ".join(domain.issues) or "None"
        pdf.set_text_color(0, 0, 0)
        pdf.cell(40, 10, name.capitalize(), border=1)
        r, g, b = _score_color(domain.health_score)
        pdf.set_text_color(r, g, b)
        pdf.cell(25, 10, f"{domain.health_score}/100", border=1, align='C')
        pdf.set_text_color(0, 0, 0)
        pdf.cell(125, 10, _latin1(issues)[:80], border=1, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(5)

    # --- RECOMENDACIONES ---
    pdf.set_font("Helvetica", 'B', 12)
    pdf.line_text(f"Recommendations ({len(report.recommendations)})", 10)
    pdf.set_font("Helvetica", size=10)
    for rec in report.recommendations:
        if rec.priority >= Priority.HIGH:
            pdf.set_text_color(192, 57, 43)
        else:
            pdf.set_text_color(0, 0, 0)
        pdf.line_text(f"[{rec.priority.name}] {rec.title}: {rec.description}")
    pdf.set_text_color(0, 0, 0)

    if report.insights:
        pdf.ln(5)
        pdf.set_font("Helvetica", 'B', 12)
        pdf.line_text("Insights", 10)
        pdf.set_font("Helvetica", size=10)
        pdf.line_text(report.insights)

    try:
        pdf.output(filename)
        return True, filename
    except OSError as e:
        return False, str(e)
