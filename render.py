import base64
import html
import html.entities
import logging
import re
import xml.etree.ElementTree as ET

import streamlit as st

logger = logging.getLogger(__name__)

_INLINE_PAREN_RE = re.compile(r"\\\((.+?)\\\)", re.DOTALL)
_DISPLAY_BRACKET_RE = re.compile(r"\\\[(.+?)\\\]", re.DOTALL)
_SVG_RE = re.compile(r"<svg\b.*?</svg>", re.DOTALL | re.IGNORECASE)
_SVG_OPEN_RE = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)
_DEFAULT_NS_RE = re.compile(r"\sxmlns\s*=")
_ENTITY_RE = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_COMMAND_RE = re.compile(r"\\([A-Za-z]+)")

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
XML_ENTITIES = {"lt", "gt", "amp", "quot", "apos"}


def normalize_math(text: str) -> str:
    """Rewrites \\( \\) and \\[ \\] delimiters into the $ / $$ convention."""
    text = _DISPLAY_BRACKET_RE.sub(lambda m: f"$${m.group(1).strip()}$$", text)
    return _INLINE_PAREN_RE.sub(lambda m: f"${m.group(1).strip()}$", text)


def to_markdown(text: str) -> str:
    """
    Prepares model text for st.markdown.

    Single newlines become hard line breaks so sub-questions and solution
    steps keep their layout; text inside $$ blocks is left untouched.
    """
    if not text:
        return ""
    text = normalize_math(text.replace("\r\n", "\n"))
    parts = text.split("$$")
    for i in range(0, len(parts), 2):
        parts[i] = parts[i].replace("\n", "  \n")
    return "$$".join(parts)


# Plain-text stand-ins for LaTeX commands; unknown commands are left as written
LATEX_SYMBOLS = {
    "left": "", "right": "",
    "cdot": "·", "cdots": "⋯", "ldots": "…", "dots": "…",
    "times": "×", "div": "÷", "pm": "±", "mp": "∓",
    "le": "≤", "leq": "≤", "ge": "≥", "geq": "≥", "ne": "≠", "neq": "≠", "approx": "≈",
    "rightarrow": "→", "to": "→", "leftarrow": "←", "Rightarrow": "⇒", "Leftrightarrow": "⇔",
    "pi": "π", "alpha": "α", "beta": "β", "angle": "∠", "circ": "°", "degree": "°",
    "triangle": "△", "perp": "⊥", "parallel": "∥", "infty": "∞",
    "in": "∈", "notin": "∉", "subset": "⊂", "cup": "∪", "cap": "∩",
    "quad": " ", "qquad": " ",
}


def to_plain_text(text: str) -> str:
    """Flattens math markup for output that cannot typeset LaTeX (PDF)."""
    if not text:
        return ""
    text = normalize_math(text).replace("$$", "").replace("$", "")
    text = re.sub(r"\\(?:d|t)?frac\{([^{}]*)\}\{([^{}]*)\}", r"(\1)/(\2)", text)
    text = re.sub(r"\\sqrt\{([^{}]*)\}", r"sqrt(\1)", text)
    text = _COMMAND_RE.sub(lambda m: LATEX_SYMBOLS.get(m.group(1), m.group(0)), text)
    text = text.replace("\\,", " ").replace("\\;", " ")
    return text.replace("{", "").replace("}", "")


def _replace_html_entity(match):
    name = match.group(1)
    if name in XML_ENTITIES:
        return match.group(0)
    char = html.entities.html5.get(f"{name};")
    if char is None:
        return match.group(0)
    return html.escape(char, quote=False)


def _declare_namespaces(svg: str) -> str:
    opening = _SVG_OPEN_RE.match(svg).group(0)
    declarations = ""
    if not _DEFAULT_NS_RE.search(opening):
        declarations += f' xmlns="{SVG_NS}"'
    if "xlink:" in svg and "xmlns:xlink" not in opening:
        declarations += f' xmlns:xlink="{XLINK_NS}"'
    return svg[:4] + declarations + svg[4:]


def extract_svg(markup):
    """
    Returns a well-formed <svg> document found in `markup`, or None.

    Models sometimes wrap the figure in code fences or prose, leave out the
    namespace declarations, or use HTML entities such as &nbsp;. Those are
    repaired; anything that still does not parse as an svg root is dropped.
    """
    if not markup:
        return None
    match = _SVG_RE.search(markup)
    if not match:
        logger.warning("Illustration has no <svg> element, ignoring it")
        return None
    svg = _declare_namespaces(match.group(0))
    svg = _ENTITY_RE.sub(_replace_html_entity, svg)
    try:
        root = ET.fromstring(svg)
    except ET.ParseError as e:
        logger.warning("Illustration is not well-formed SVG: %s", e)
        return None
    if root.tag != f"{{{SVG_NS}}}svg":
        logger.warning("Illustration root is %s, not an SVG element", root.tag)
        return None
    return svg


def svg_img_tag(svg: str) -> str:
    # An <img> data URI keeps any script inside the figure from running
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return (
        '<div style="display:flex;justify-content:center;background:#fff;padding:8px;border-radius:6px;">'
        f'<img src="data:image/svg+xml;base64,{encoded}" style="max-width:100%;"/></div>'
    )


def render_math(text: str, target=None):
    """Renders text with inline math; typesetting problems are logged, not shown."""
    target = target if target is not None else st
    try:
        target.markdown(to_markdown(text))
    except Exception:
        logger.exception("Rendering math content failed")


def render_solution(solution, steps_heading: str = None, figure_heading: str = None, target=None):
    target = target if target is not None else st
    if steps_heading:
        target.markdown(f"**{steps_heading}**")
    render_math(solution.steps, target)

    svg = extract_svg(solution.svg)
    if svg:
        if figure_heading:
            target.markdown(f"**{figure_heading}**")
        try:
            target.markdown(svg_img_tag(svg), unsafe_allow_html=True)
        except Exception:
            logger.exception("Rendering illustration failed")
