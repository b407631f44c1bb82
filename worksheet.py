import io
import os
import logging
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.lib.units import cm

from render import to_plain_text

logger = logging.getLogger(__name__)

# DejaVu Sans covers Vietnamese diacritics; Helvetica does not.
FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/Library/Fonts/DejaVuSans.ttf",
    "C:\\Windows\\Fonts\\DejaVuSans.ttf",
    "C:\\Windows\\Fonts\\arial.ttf",
]

TOP_Y = 26 * cm
BOTTOM_Y = 3 * cm
LINE_HEIGHT = 14
LEFT_X = 2 * cm
RIGHT_X = 19 * cm
TEXT_INDENT = 2.5 * cm
TEXT_WIDTH = RIGHT_X - TEXT_INDENT


def register_unicode_font():
    """Registers the first available Unicode TTF font, falling back to Helvetica."""
    if "WorksheetSans" in pdfmetrics.getRegisteredFontNames():
        return "WorksheetSans"
    for font_path in FONT_CANDIDATES:
        if os.path.exists(font_path):
            try:
                pdfmetrics.registerFont(TTFont("WorksheetSans", font_path))
                return "WorksheetSans"
            except Exception as e:
                logger.warning("Font registration failed for %s: %s", font_path, e)
    return "Helvetica"


def _split_word(word, font_name, size, max_width):
    # A single token wider than the line is cut by characters
    pieces = []
    while pdfmetrics.stringWidth(word, font_name, size) > max_width and len(word) > 1:
        cut = len(word) - 1
        while cut > 1 and pdfmetrics.stringWidth(word[:cut], font_name, size) > max_width:
            cut -= 1
        pieces.append(word[:cut])
        word = word[cut:]
    pieces.append(word)
    return pieces


def wrap_lines(text, font_name="Helvetica", size=11, max_width=TEXT_WIDTH):
    """Flattens math and wraps each paragraph to `max_width` points in the given font."""
    lines = []
    for paragraph in to_plain_text(text).split("\n"):
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}" if current else word
            if pdfmetrics.stringWidth(candidate, font_name, size) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            *full, current = _split_word(word, font_name, size, max_width)
            lines.extend(full)
        lines.append(current)
    return lines


class _PageWriter:
    """Writes lines top-down and starts a new page when the bottom is reached."""

    def __init__(self, c, font_name, title):
        self.c = c
        self.font_name = font_name
        self.title = title
        self.page_num = 0
        self.y = TOP_Y
        self.new_page()

    def new_page(self):
        if self.page_num:
            self.c.showPage()
        self.page_num += 1
        self.c.saveState()
        self.c.setFont(self.font_name, 10)
        self.c.drawString(LEFT_X, 28.5 * cm, self.title)
        self.c.drawRightString(RIGHT_X, 28.5 * cm, f"{self.page_num}")
        self.c.line(LEFT_X, 28.3 * cm, RIGHT_X, 28.3 * cm)
        self.c.restoreState()
        self.y = TOP_Y

    def ensure(self, height):
        if self.y - height < BOTTOM_Y:
            self.new_page()

    def wrap(self, text, size=11, indent=TEXT_INDENT):
        return wrap_lines(text, self.font_name, size, RIGHT_X - indent)

    def line(self, text, size=11, indent=TEXT_INDENT):
        self.ensure(LINE_HEIGHT)
        self.c.setFont(self.font_name, size)
        self.c.drawString(indent, self.y, text)
        self.y -= LINE_HEIGHT

    def gap(self, height):
        self.y -= height


def generate_worksheet(problems, title="Worksheet", source_text=None, labels=None) -> bytes:
    """
    Builds a printable PDF of the generated problems plus an answer key.

    `problems` is a sequence of PracticeProblem; `labels` overrides the
    captions (original/workspace/answer_key/unsolved/problem).
    """
    labels = {
        "original": "Original problem",
        "workspace": "Workspace",
        "answer_key": "Answer Key & Hints",
        "unsolved": "(not solved yet)",
        "problem": "Problem {number}",
        **(labels or {}),
    }
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    font_name = register_unicode_font()
    writer = _PageWriter(c, font_name, title)

    c.setFont(font_name, 18)
    c.drawCentredString(A4[0] / 2, writer.y, title)
    writer.gap(1.2 * cm)

    if source_text:
        writer.line(labels["original"] + ":", size=12, indent=LEFT_X)
        for line in writer.wrap(source_text, size=10):
            writer.line(line, size=10)
        writer.gap(0.6 * cm)

    for i, problem in enumerate(problems):
        writer.ensure(3 * LINE_HEIGHT)
        writer.line(labels["problem"].format(number=i + 1) + ".", size=12, indent=LEFT_X)
        for line in writer.wrap(problem.statement):
            writer.line(line)

        # Workspace below each problem
        writer.ensure(4 * cm)
        c.setDash(3, 3)
        c.line(LEFT_X, writer.y - 0.3 * cm, RIGHT_X, writer.y - 0.3 * cm)
        c.setFont(font_name, 9)
        c.drawRightString(RIGHT_X, writer.y - 0.1 * cm, labels["workspace"])
        c.setDash(1, 0)
        writer.gap(4 * cm)

    # Answer key
    writer.new_page()
    c.setFont(font_name, 16)
    c.drawString(LEFT_X, writer.y, labels["answer_key"])
    writer.gap(1.2 * cm)

    for i, problem in enumerate(problems):
        number = labels["problem"].format(number=i + 1)
        if problem.solution is None:
            writer.line(f"{number}: {labels['unsolved']}", size=10)
            writer.gap(0.3 * cm)
            continue
        writer.line(f"{number}:", size=10, indent=LEFT_X)
        steps = writer.wrap(problem.solution.steps, size=9)
        for line in steps[:8]:
            writer.line(line, size=9)
        if len(steps) > 8:
            writer.line("...", size=9)
        writer.gap(0.3 * cm)

    c.save()
    return buffer.getvalue()
