# Analysis result -> text summary, JSON file and PDF report.
# Payload schema (as written by save_results):
# {
#   "timestamp": "...",
#   "summary": "...",
#   "analysis_results": {
#     "source": "...",
#     "flagged_entries": [
#       {
#         "source_ip": "...",
#         "window_start": "...",
#         "request_count": <int>,
#         "request_frequency": <float>,
#         "risk_score": <int>,
#         "suspicious_indicators": ["...", ...],
#         ...
#       },
#       ...
#     ],
#     "analysis_stats": {
#       "total_entries": <int>,
#       "unique_ips": <int>,
#       "rows_rejected": <int>,
#       "windows_evaluated": <int>,
#       "flagged_windows": <int>,
#       "rule_triggers": {"<rule_id>": <int>, ...},
#       "known_ddos_attacks": <int>,
#       "labeled_attacks": <int>
#     },
#     "analysis_config": {...}
#   },
#   "config": {"high_frequency_threshold": ..., "medium_frequency_threshold": ..., "window_minutes": ...}
# }

from __future__ import annotations

import io
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

# --- ReportLab ---
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont, TTFError
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .dto import AnalysisResult
from .utils import utcnow_iso

logger = logging.getLogger(__name__)

__all__ = [
    "build_summary_report",
    "result_payload",
    "save_results",
    "build_pdf",
    "build_pdf_bytes",
]

# =========================
# Text summary
# =========================

def build_summary_report(result: AnalysisResult) -> str:
    stats = result.stats
    lines = [
        "=== DDoS Analysis Summary ===",
        "",
        f"Total log entries analyzed: {stats.total_entries}",
        f"Unique source IPs: {stats.unique_ips}",
        f"Rows rejected: {stats.rows_rejected}",
        f"Windows evaluated: {stats.windows_evaluated}",
    ]
    for rule_id, count in sorted(stats.rule_triggers.items()):
        lines.append(f"  {rule_id}: {count}")
    lines += [
        f"Known DDoS attacks detected: {stats.known_ddos_attacks}",
        f"Labeled attack entries: {stats.labeled_attacks}",
        "",
    ]

    if not result.flagged:
        lines.append("No suspicious activity detected.")
    else:
        lines.append(f"{len(result.flagged)} suspicious entries detected:")
        lines.append("")
        for n, fw in enumerate(result.flagged, start=1):
            lines.append(f"{n}. IP: {fw.source_ip} (Risk Score: {fw.risk_score})")
            lines.append(f"   Window: {fw.window_start.isoformat()}")
            lines.append(f"   Requests: {fw.request_count} ({fw.request_frequency:.2f} req/min)")
            lines.append(f"   Indicators: {', '.join(fw.indicators)}")
            lines.append("")
    return "\n".join(lines) + "\n"


# =========================
# JSON persistence
# =========================

def result_payload(result: AnalysisResult) -> Dict[str, Any]:
    cfg = result.config
    return {
        "timestamp": utcnow_iso(),
        "summary": build_summary_report(result),
        "analysis_results": result.to_dict(),
        "config": {
            "high_frequency_threshold": cfg.high_frequency_threshold,
            "medium_frequency_threshold": cfg.medium_frequency_threshold,
            "window_minutes": cfg.window_minutes,
        },
    }


def save_results(result: AnalysisResult, path: str | os.PathLike) -> Path:
    """Write the result payload as indented JSON; returns the path written."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as f:
        json.dump(result_payload(result), f, indent=2)
    logger.info("Results saved to: %s", out)
    return out


# =========================
# Fonts (avoid tofu/blocks)
# =========================

def _try_reg(name, path):
    if not os.path.exists(path):
        return False
    try:
        pdfmetrics.registerFont(TTFont(name, path))
    except TTFError:
        logger.debug("Could not register font %s from %s", name, path)
        return False
    return True


def ensure_fonts():
    candidates = [
        ("DejaVuSans", "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        ("DejaVuSans", "/Library/Fonts/DejaVu Sans.ttf"),
        ("DejaVuSans", "C:\\Windows\\Fonts\\DejaVuSans.ttf"),
    ]
    for name, path in candidates:
        if _try_reg(name, path):
            return True
    return False


# =========================
# Data extraction
# =========================

STAT_KEYS_ORDER = [
    "total_entries",
    "unique_ips",
    "rows_rejected",
    "windows_evaluated",
    "flagged_windows",
    "known_ddos_attacks",
    "labeled_attacks",
]


def extract_core_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    results = data.get("analysis_results") or {}
    stats = results.get("analysis_stats") or {}

    rows = []
    for n, it in enumerate(results.get("flagged_entries") or [], start=1):
        if not isinstance(it, dict):
            continue
        rows.append([
            n,
            it.get("source_ip"),
            it.get("window_start"),
            it.get("request_count"),
            round(float(it.get("request_frequency", 0) or 0), 2),
            it.get("risk_score"),
            "; ".join(it.get("suspicious_indicators") or []),
        ])

    return {
        "ran_at": data.get("timestamp"),
        "source": results.get("source"),
        "stats": {k: stats.get(k) for k in STAT_KEYS_ORDER if k in stats},
        "rule_triggers": dict(stats.get("rule_triggers") or {}),
        "flagged_rows": rows,
    }


# =========================
# PDF pieces
# =========================

def header_footer(canvas, doc, title):
    canvas.saveState()
    w, h = doc.pagesize
    canvas.setFont("Helvetica-Bold", 10)
    canvas.drawString(20*mm, h-15*mm, title)
    canvas.setStrokeColorRGB(0.2, 0.2, 0.2)
    canvas.setLineWidth(0.5)
    canvas.line(15*mm, h-17*mm, w-15*mm, h-17*mm)
    canvas.setFont("Helvetica", 8)
    canvas.drawString(20*mm, 12*mm, f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    canvas.drawRightString(w-20*mm, 12*mm, f"Page {doc.page}")
    canvas.restoreState()


def _table_style(font, numeric_cols=()):
    cmds = [
        ("WORDWRAP", (0, 0), (-1, -1), 1),
        ("FONTNAME", (0, 0), (-1, 0), font), ("FONTSIZE", (0, 0), (-1, 0), 9.5),
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#EDEDED")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.HexColor("#333333")),
        ("FONTNAME", (0, 1), (-1, -1), font), ("FONTSIZE", (0, 1), (-1, -1), 9),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#CFCFCF")),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#FBFBFB")]),
    ]
    for col in numeric_cols:
        cmds.append(("ALIGN", (col, 1), (col, -1), "RIGHT"))
    return TableStyle(cmds)


def _widths(weights, page_width):
    scale = page_width / sum(weights)
    return [w*scale for w in weights]


def stats_table(stats: Dict[str, Any], triggers: Dict[str, int], styles, font, page_width=450):
    rows: List[List[Any]] = [["Statistic", "Value"]]
    for k in STAT_KEYS_ORDER:
        if k in stats:
            rows.append([Paragraph(k, styles["Cell"]), Paragraph(str(stats[k]), styles["CellNum"])])
    for rule_id, count in sorted(triggers.items()):
        rows.append([Paragraph(f"rule: {rule_id}", styles["Cell"]), Paragraph(str(count), styles["CellNum"])])
    if len(rows) == 1:
        rows.append(["-", "-"])

    t = Table(rows, colWidths=_widths([2.0, 1.0], page_width), hAlign="LEFT")
    t.setStyle(_table_style(font, numeric_cols=(1,)))
    return t


def flagged_table(rows: List[List[Any]], styles, font, page_width=450):
    header = ["#", "Source IP", "Window start", "Requests", "Req/min", "Risk", "Indicators"]
    if not rows:
        body = [["-", "-", "-", "-", "-", "-", "No suspicious activity detected."]]
    else:
        body = []
        for r in rows:
            r = list(r)
            r[2] = Paragraph(str(r[2] or "-"), styles["Cell"])
            r[6] = Paragraph(str(r[6] or "-"), styles["Cell"])
            body.append(r)

    t = Table([header] + body, colWidths=_widths([0.4, 1.2, 1.5, 0.8, 0.8, 0.5, 3.2], page_width), hAlign="LEFT")
    t.setStyle(_table_style(font, numeric_cols=(3, 4, 5)))
    return t


# =========================
# Story builder
# =========================

def _build_story(core: Dict[str, Any], title: str, doc_width: float):
    font = "DejaVuSans" if ensure_fonts() else "Helvetica"

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="H1X", parent=styles["Heading1"], fontName=font, fontSize=16, leading=19, spaceAfter=6))
    styles.add(ParagraphStyle(name="H2X", parent=styles["Heading2"], fontName=font, fontSize=13, leading=16, spaceAfter=4))
    styles.add(ParagraphStyle(name="BodyX", parent=styles["BodyText"], fontName=font, fontSize=10, leading=13, spaceAfter=8))
    styles.add(ParagraphStyle(name="Cell", parent=styles["BodyText"], fontName=font, fontSize=9, leading=12,
                              wordWrap="CJK", spaceAfter=0, spaceBefore=0))
    styles.add(ParagraphStyle(name="CellNum", parent=styles["Cell"], alignment=2))

    overview = []
    if core.get("source"):
        overview.append(f"Source: {core['source']}")
    if core.get("ran_at"):
        overview.append(f"Ran at: {core['ran_at']}")

    story = [Paragraph(title, styles["H1X"]), Spacer(1, 2)]
    if overview:
        story += [Paragraph("Overview", styles["H2X"]),
                  Paragraph(" | ".join(overview), styles["BodyX"]),
                  Spacer(1, 4)]

    story += [Paragraph("Statistics", styles["H2X"]),
              stats_table(core.get("stats") or {}, core.get("rule_triggers") or {}, styles, font, page_width=doc_width),
              Spacer(1, 8)]

    story += [Paragraph("Flagged Windows", styles["H2X"]),
              flagged_table(core.get("flagged_rows") or [], styles, font, page_width=doc_width)]
    return story


def _render(target, payload: Dict[str, Any], title: str, use_landscape: bool) -> None:
    core = extract_core_fields(payload)
    pagesize = landscape(A4) if use_landscape else A4
    doc = SimpleDocTemplate(target, pagesize=pagesize, leftMargin=18*mm, rightMargin=18*mm,
                            topMargin=25*mm, bottomMargin=18*mm, title=title)
    story = _build_story(core, title, doc.width)
    doc.build(story, onFirstPage=lambda c, d: header_footer(c, d, title),
              onLaterPages=lambda c, d: header_footer(c, d, title))


# =========================
# Public builders
# =========================

def build_pdf(payload: Dict[str, Any], output_path: str | os.PathLike, title: str = "DDoS Analysis Report",
              use_landscape: bool = True) -> Path:
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    _render(str(out), payload, title, use_landscape)
    logger.info("PDF report written to %s", out)
    return out


def build_pdf_bytes(payload: Dict[str, Any], title: str = "DDoS Analysis Report", use_landscape: bool = True) -> bytes:
    buf = io.BytesIO()
    _render(buf, payload, title, use_landscape)
    return buf.getvalue()
