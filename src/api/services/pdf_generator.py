"""
Letter rendering to HTML and PDF.

The AI draft is Markdown-ish plain text. It is rendered with markdown-it and
placed in a letter layout: attorney letterhead, date, recipient, subject
line, body, then the sender's sign-off. WeasyPrint turns the result into PDF.
"""

import html
import io

import structlog
from markdown_it import MarkdownIt

from src.shared.models import Letter

logger = structlog.get_logger(__name__)

# CSS styles for the PDF
PDF_STYLES = """
@page {
    size: Letter;
    margin: 2cm;
    @bottom-center {
        content: "Page " counter(page) " of " counter(pages);
        font-size: 9px;
        color: #666;
    }
}

body {
    font-family: Helvetica, Arial, sans-serif;
    font-size: 11pt;
    line-height: 1.5;
    color: #222;
}

.letterhead {
    font-size: 16pt;
    font-weight: bold;
    border-bottom: 1px solid #222;
    padding-bottom: 0.4em;
    margin-bottom: 1em;
}

.meta p {
    margin: 0.2em 0;
}

.subject {
    font-weight: bold;
    margin: 1em 0;
}

.signature {
    margin-top: 2em;
    font-size: 10pt;
}

.signature .name {
    font-weight: bold;
    margin-top: 2em;
}

.signature .address {
    font-size: 9pt;
    white-space: pre-line;
}
"""


class LetterPDFGenerator:
    """
    Renders letters to styled HTML and PDF.

    Uses WeasyPrint for HTML-to-PDF rendering with custom CSS.
    """

    def __init__(self, custom_css: str | None = None) -> None:
        # commonmark preset avoids the linkify dependency; raw HTML in drafts is escaped
        self.md = MarkdownIt("commonmark", {"html": False})
        self.css = PDF_STYLES
        if custom_css:
            self.css += "\n" + custom_css

    def render_body(self, text: str) -> str:
        """Render draft text to an HTML fragment."""
        return self.md.render(text)

    def render_document(self, letter: Letter) -> str:
        """Render a full HTML document for ``letter``."""
        e = html.escape
        body = self.render_body(letter.ai_draft or letter.content or "")
        date_line = letter.created_at.strftime("%B %d, %Y").replace(" 0", " ")

        parts = ['<!DOCTYPE html>', "<html>", "<head>", '<meta charset="utf-8">']
        parts.append(f"<title>{e(letter.title)}</title>")
        parts += ["</head>", "<body>"]
        if letter.attorney_name:
            parts.append(f'<div class="letterhead">{e(letter.attorney_name)}</div>')
        parts.append('<div class="meta">')
        parts.append(f"<p>Date: {date_line}</p>")
        if letter.recipient:
            parts.append(f"<p>To: {e(letter.recipient)}</p>")
        parts.append("</div>")
        parts.append(f'<p class="subject">Re: {e(letter.subject or letter.title)}</p>')
        parts.append(body)
        if letter.sender_name:
            parts.append('<div class="signature">')
            parts.append("<p>Sincerely,</p>")
            parts.append(f'<p class="name">{e(letter.sender_name)}</p>')
            if letter.sender_address:
                parts.append(f'<p class="address">{e(letter.sender_address)}</p>')
            parts.append("</div>")
        parts += ["</body>", "</html>"]
        return "\n".join(parts)

    def generate(self, letter: Letter) -> bytes:
        """
        Render ``letter`` to PDF.

        Returns:
            PDF content as bytes.
        """
        html_content = self.render_document(letter)
        pdf_bytes = self._html_to_pdf(html_content)

        logger.info(
            "PDF generated",
            letter_id=letter.id,
            html_length=len(html_content),
            pdf_size=len(pdf_bytes),
        )

        return pdf_bytes

    def _html_to_pdf(self, html_content: str) -> bytes:
        """Convert HTML to PDF using WeasyPrint."""
        # WeasyPrint loads Pango at import time
        from weasyprint import CSS, HTML

        pdf_buffer = io.BytesIO()
        HTML(string=html_content).write_pdf(pdf_buffer, stylesheets=[CSS(string=self.css)])
        return pdf_buffer.getvalue()
