"""Render a drafted offer letter as a one-document PDF."""

import io
from datetime import date
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

WIDTH, HEIGHT = LETTER

styles = getSampleStyleSheet()

STYLE_TITLE = ParagraphStyle("LetterTitle", parent=styles["Heading1"], fontSize=16, spaceAfter=6, textColor=colors.HexColor("#1e293b"))
STYLE_META = ParagraphStyle("LetterMeta", parent=styles["Normal"], fontSize=9, textColor=colors.grey, spaceAfter=14)
STYLE_BODY = ParagraphStyle("LetterBody", parent=styles["Normal"], fontSize=11, leading=16, spaceAfter=10)


def _footer(canvas, doc):
    canvas.saveState()
    canvas.setFont("Helvetica", 7)
    canvas.setFillColor(colors.grey)
    canvas.drawCentredString(WIDTH / 2, 1 * cm, "Draft offer letter. Review before sending.")
    canvas.restoreState()


def render_offer_letter_pdf(letter: str, property_details: str, today: date | None = None) -> bytes:
    story = [
        Paragraph("Offer Letter", STYLE_TITLE),
        Paragraph(f"{escape(property_details)} &middot; {(today or date.today()).isoformat()}", STYLE_META),
    ]
    for block in letter.split("\n\n"):
        block = block.strip()
        if block:
            story.append(Paragraph(escape(block).replace("\n", "<br/>"), STYLE_BODY))
    story.append(Spacer(1, 1 * cm))

    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=LETTER, topMargin=2.5 * cm, bottomMargin=2 * cm, leftMargin=2.5 * cm, rightMargin=2.5 * cm)
    doc.build(story, onFirstPage=_footer, onLaterPages=_footer)
    return buf.getvalue()
