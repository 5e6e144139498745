# propertyflow/domain/lease_render.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from html import escape
from io import BytesIO
from typing import Iterable, List, Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    KeepTogether,
    ListFlowable,
    ListItem,
    PageBreak,
    Paragraph as PdfParagraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from .lease_document import (
    Block,
    Bullets,
    Checklist,
    GridTable,
    KeyValueTable,
    LeaseDocument,
    Notice,
    Paragraph,
    Section,
    SignatureLine,
    Subheading,
)


@dataclass(frozen=True)
class SignatureRecord:
    """One executed signature, printed on the certificate page of a signed PDF."""

    role: str
    name: str
    email: str
    signed_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    signature_sha256: Optional[str] = None


_CSS = """
@page { margin: 0.75in; size: letter; }
body { font-family: 'Times New Roman', Times, serif; font-size: 11pt; line-height: 1.6; color: #000;
       max-width: 8.5in; margin: 0 auto; padding: 0.5in; }
h1 { text-align: center; font-size: 16pt; margin-bottom: 24pt; text-transform: uppercase;
     border-bottom: 2px solid #000; padding-bottom: 12pt; }
h2 { font-size: 12pt; margin-top: 18pt; margin-bottom: 8pt; text-transform: uppercase;
     border-bottom: 1px solid #333; padding-bottom: 4pt; }
h3 { font-size: 11pt; margin-top: 12pt; margin-bottom: 6pt; }
.section { margin-bottom: 12pt; }
.checkbox { display: inline-block; width: 12px; height: 12px; border: 1px solid #000; margin-right: 6px;
            vertical-align: middle; text-align: center; line-height: 10px; font-size: 10px; }
.checkbox.checked::after { content: '\\2713'; }
.list { margin-left: 20pt; margin-top: 6pt; }
.signature-block { display: inline-block; min-width: 250px; border-bottom: 1px solid #000; min-height: 40px; }
.sig-row { margin-top: 24pt; }
.sig-label { font-weight: bold; margin-bottom: 4pt; }
.date-line { border-bottom: 1px solid #000; width: 150px; display: inline-block; }
.initials-line { border-bottom: 1px solid #000; width: 60px; display: inline-block; }
.initials-row { margin-top: 8pt; font-size: 10pt; color: #333; }
.page-break { page-break-before: always; }
.legal-notice { background: #f5f5f5; border: 1px solid #ccc; padding: 12pt; margin: 12pt 0; font-size: 10pt; }
table { width: 100%; border-collapse: collapse; margin: 12pt 0; }
td, th { border: 1px solid #000; padding: 6pt; text-align: left; }
th { background: #f0f0f0; }
footer { margin-top: 48pt; text-align: center; font-size: 9pt; color: #666; border-top: 1px solid #ccc; padding-top: 12pt; }
"""


# -----------------------------
# HTML
# -----------------------------
def _html_block(b: Block) -> str:
    if isinstance(b, Paragraph):
        label = f"<strong>{escape(b.label)}</strong> " if b.label else ""
        return f"<p>{label}{escape(b.text)}</p>"
    if isinstance(b, Subheading):
        return f"<h3>{escape(b.text)}</h3>"
    if isinstance(b, Bullets):
        items = "".join(f"<li>{escape(i)}</li>" for i in b.items)
        return f'<ul class="list">{items}</ul>'
    if isinstance(b, KeyValueTable):
        rows = "".join(f"<tr><th>{escape(k)}</th><td>{escape(v)}</td></tr>" for k, v in b.rows)
        return f"<table>{rows}</table>"
    if isinstance(b, GridTable):
        head = "".join(f"<th>{escape(h)}</th>" for h in b.header)
        body = "".join("<tr>" + "".join(f"<td>{escape(c)}</td>" for c in row) + "</tr>" for row in b.rows)
        return f"<table><tr>{head}</tr>{body}</table>"
    if isinstance(b, Checklist):
        return "".join(
            f'<p><span class="checkbox{" checked" if checked else ""}"></span> {escape(text)}</p>' for checked, text in b.items
        )
    if isinstance(b, Notice):
        parts: List[str] = []
        if b.title:
            parts.append(f"<strong>{escape(b.title)}</strong><br/>")
        parts.extend(f"<p>{escape(p)}</p>" for p in b.paragraphs)
        parts.extend(f'<span class="checkbox"></span> {escape(c)}<br/>' for c in b.checkboxes)
        if b.bullets:
            parts.append("<ul>" + "".join(f"<li>{escape(i)}</li>" for i in b.bullets) + "</ul>")
        return f'<div class="legal-notice">{"".join(parts)}</div>'
    if isinstance(b, SignatureLine):
        return (
            f'<div class="sig-row" data-role="{escape(b.role)}">'
            f'<p class="sig-label">{escape(b.label)}</p><p>{escape(b.name)}</p>'
            '<div class="signature-block"></div><p>Signature</p>'
            '<p>Date: <span class="date-line"></span></p></div>'
        )
    raise TypeError(f"unsupported block: {type(b).__name__}")


def _html_initials(s: Section) -> str:
    if not (s.tenant_initials or s.landlord_initials):
        return ""
    parts = []
    if s.tenant_initials:
        parts.append('<strong>Tenant Initials:</strong> <span class="initials-line"></span>')
    if s.landlord_initials:
        parts.append('<strong>Landlord Initials:</strong> <span class="initials-line"></span>')
    return f'<div class="initials-row">{" ".join(parts)}</div>'


def render_html(doc: LeaseDocument) -> str:
    out: List[str] = [
        "<!DOCTYPE html>",
        '<html><head><meta charset="UTF-8" />',
        f"<title>{escape(doc.title)}</title>",
        f"<style>{_CSS}</style></head><body>",
        f"<h1>{escape(doc.title)}</h1>",
        f'<div class="section"><p>{escape(doc.preamble)}</p></div>',
    ]
    for s in doc.sections:
        if s.page_break:
            out.append('<div class="page-break"></div>')
        out.append(f"<h2>{escape(s.heading)}</h2>")
        out.append('<div class="section">')
        out.extend(_html_block(b) for b in s.blocks)
        out.append(_html_initials(s))
        out.append("</div>")
    out.append("<footer>" + "".join(f"<p>{escape(line)}</p>" for line in doc.footer) + "</footer>")
    out.append("</body></html>")
    return "\n".join(out)


# -----------------------------
# PDF (reportlab)
# -----------------------------
def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    body = ParagraphStyle("LeaseBody", parent=base["Normal"], fontName="Times-Roman", fontSize=10.5, leading=14, spaceAfter=4)
    return {
        "title": ParagraphStyle("LeaseTitle", parent=base["Title"], fontName="Times-Bold", fontSize=16, spaceAfter=18),
        "h2": ParagraphStyle("LeaseH2", parent=base["Heading2"], fontName="Times-Bold", fontSize=12, spaceBefore=12, spaceAfter=6),
        "h3": ParagraphStyle("LeaseH3", parent=base["Heading3"], fontName="Times-Bold", fontSize=11, spaceBefore=6, spaceAfter=4),
        "body": body,
        "notice": ParagraphStyle("LeaseNotice", parent=body, fontSize=9.5, leading=12, backColor=colors.HexColor("#f5f5f5"),
                                 borderColor=colors.HexColor("#cccccc"), borderWidth=0.5, borderPadding=6, spaceBefore=6, spaceAfter=8),
        "small": ParagraphStyle("LeaseSmall", parent=body, fontSize=9, textColor=colors.HexColor("#333333")),
        "footer": ParagraphStyle("LeaseFooter", parent=body, fontSize=8, alignment=TA_CENTER, textColor=colors.HexColor("#666666")),
    }


def _x(text: str) -> str:
    # reportlab paragraphs parse a small XML dialect
    return escape(text, quote=False)


def _pdf_table(rows: Sequence[Sequence[str]], st: dict[str, ParagraphStyle], header: bool) -> Table:
    data = [[PdfParagraph(_x(c), st["body"]) for c in row] for row in rows]
    t = Table(data, hAlign="LEFT", colWidths=None)
    style = [
        ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]
    if header:
        style.append(("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f0f0f0")))
    else:
        style.append(("BACKGROUND", (0, 0), (0, -1), colors.HexColor("#f0f0f0")))
    t.setStyle(TableStyle(style))
    return t


def _pdf_block(b: Block, st: dict[str, ParagraphStyle]) -> list:
    if isinstance(b, Paragraph):
        label = f"<b>{_x(b.label)}</b> " if b.label else ""
        return [PdfParagraph(label + _x(b.text), st["body"])]
    if isinstance(b, Subheading):
        return [PdfParagraph(_x(b.text), st["h3"])]
    if isinstance(b, Bullets):
        return [ListFlowable([ListItem(PdfParagraph(_x(i), st["body"])) for i in b.items], bulletType="bullet", leftIndent=14)]
    if isinstance(b, KeyValueTable):
        return [_pdf_table(b.rows, st, header=False)]
    if isinstance(b, GridTable):
        return [_pdf_table([b.header, *b.rows], st, header=True)]
    if isinstance(b, Checklist):
        return [PdfParagraph(("[X] " if checked else "[ ] ") + _x(text), st["body"]) for checked, text in b.items]
    if isinstance(b, Notice):
        lines: List[str] = [_x(p) for p in b.paragraphs]
        lines.extend("[ ] " + _x(c) for c in b.checkboxes)
        lines.extend("&bull; " + _x(i) for i in b.bullets)
        text = "<br/>".join(lines)
        if b.title:
            text = f"<b>{_x(b.title)}</b>" + ("<br/><br/>" + text if text else "")
        return [PdfParagraph(text, st["notice"])]
    if isinstance(b, SignatureLine):
        return [
            KeepTogether(
                [
                    Spacer(1, 14),
                    PdfParagraph(f"<b>{_x(b.label)}</b> {_x(b.name)}", st["body"]),
                    Spacer(1, 22),
                    PdfParagraph("Signature: ________________________________ &nbsp;&nbsp; Date: ______________", st["body"]),
                ]
            )
        ]
    raise TypeError(f"unsupported block: {type(b).__name__}")


def _pdf_initials(s: Section, st: dict[str, ParagraphStyle]) -> list:
    parts = []
    if s.tenant_initials:
        parts.append("<b>Tenant Initials:</b> ________")
    if s.landlord_initials:
        parts.append("<b>Landlord Initials:</b> ________")
    return [PdfParagraph(" &nbsp;&nbsp;&nbsp; ".join(parts), st["small"])] if parts else []


def _certificate(doc: LeaseDocument, signatures: Iterable[SignatureRecord], content_hash: Optional[str], st: dict[str, ParagraphStyle]) -> list:
    story: list = [PageBreak(), PdfParagraph("Signature Certificate", st["h2"])]
    story.append(PdfParagraph(f"Document ID: {_x(doc.document_id)}", st["body"]))
    if content_hash:
        story.append(PdfParagraph(f"Unsigned document SHA-256: {_x(content_hash)}", st["small"]))
    rows = [("Role", "Signer", "Signed (UTC)", "IP address", "Signature SHA-256")]
    for s in signatures:
        rows.append(
            (
                s.role.title(),
                f"{s.name} <{s.email}>",
                s.signed_at.strftime("%Y-%m-%d %H:%M:%S"),
                s.ip_address or "-",
                (s.signature_sha256 or "-")[:16],
            )
        )
    story.append(_pdf_table(rows, st, header=True))
    story.append(
        PdfParagraph(
            "Each signer consented to sign electronically. Signature images and the full audit trail are retained "
            "with the lease record.",
            st["small"],
        )
    )
    return story


def render_pdf(
    doc: LeaseDocument,
    *,
    signatures: Optional[Sequence[SignatureRecord]] = None,
    content_hash: Optional[str] = None,
) -> bytes:
    """
    Render the lease to PDF bytes.

    When `signatures` is given a certificate page listing each signer is
    appended. Output is byte-stable for the same input (reportlab invariant mode).
    """
    st = _styles()
    buf = BytesIO()
    pdf = SimpleDocTemplate(
        buf,
        pagesize=LETTER,
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=doc.title,
        author="PropertyFlow HQ",
        invariant=1,
    )

    story: list = [PdfParagraph(_x(doc.title.upper()), st["title"]), PdfParagraph(_x(doc.preamble), st["body"])]
    for s in doc.sections:
        if s.page_break:
            story.append(PageBreak())
        story.append(PdfParagraph(_x(s.heading.upper()), st["h2"]))
        for b in s.blocks:
            story.extend(_pdf_block(b, st))
        story.extend(_pdf_initials(s, st))

    story.append(Spacer(1, 24))
    story.extend(PdfParagraph(_x(line), st["footer"]) for line in doc.footer)

    if signatures:
        story.extend(_certificate(doc, signatures, content_hash, st))

    pdf.build(story)
    return buf.getvalue()
