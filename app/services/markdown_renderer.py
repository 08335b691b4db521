"""Markdown handling for the analysis narrative.

Both outputs come from one Python-Markdown parse: `to_html` feeds the result
display (sanitized, the text comes from the model), `to_blocks` flattens the
same element tree into the block list the rasterizer lays out line by line.
"""
import re
from html import unescape
from dataclasses import dataclass
from xml.etree.ElementTree import Element

import markdown
import nh3
from markdown.treeprocessors import Treeprocessor
from markdown.util import ETX, STX

ALLOWED_TAGS = {
    "h1", "h2", "h3", "h4", "h5", "h6",
    "p", "br", "hr", "blockquote", "pre", "code",
    "ul", "ol", "li", "strong", "em",
}
ALLOWED_ATTRIBUTES = {"ol": {"start"}}

_HEADINGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_PLACEHOLDER_RE = re.compile(f"{STX}.*?{ETX}")


@dataclass(frozen=True)
class Block:
    kind: str  # "heading", "bullet", "numbered", "paragraph", "blank"
    text: str = ""
    level: int = 0
    marker: str = ""


class _KeepTree(Treeprocessor):
    """Keep a reference to the finished element tree on the Markdown instance."""

    def run(self, root: Element) -> None:
        self.md.block_root = root


def _parse(text: str) -> tuple[str, Element]:
    md = markdown.Markdown(extensions=["sane_lists"], output_format="html")
    # Runs after the inline and unescape processors.
    md.treeprocessors.register(_KeepTree(md), "keep_tree", -10)
    md.block_root = Element("div")  # convert() skips the tree for blank input
    html = md.convert(text)
    return html, md.block_root


def sanitize(html: str) -> str:
    return nh3.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES)


def to_html(text: str) -> str:
    html, _ = _parse(text)
    return sanitize(html)


def _text(element: Element, skip: tuple[str, ...] = ()) -> str:
    parts = [element.text or ""]
    for child in element:
        if child.tag not in skip:
            parts.append(_text(child, skip))
        parts.append(child.tail or "")
    # Raw HTML is stashed behind placeholders and never reaches the raster.
    return " ".join(unescape(_PLACEHOLDER_RE.sub("", "".join(parts))).split())


def _list_blocks(element: Element, level: int) -> list[Block]:
    blocks = []
    start = int(element.get("start", "1")) if element.tag == "ol" else 1
    for index, item in enumerate(i for i in element if i.tag == "li"):
        text = _text(item, skip=("ul", "ol"))
        if element.tag == "ol":
            blocks.append(Block("numbered", text, level=level, marker=f"{start + index}."))
        else:
            blocks.append(Block("bullet", text, level=level))
        for nested in item:
            if nested.tag in ("ul", "ol"):
                blocks.extend(_list_blocks(nested, level + 1))
    return blocks


def _element_blocks(element: Element) -> list[Block]:
    if element.tag in _HEADINGS:
        return [Block("heading", _text(element), level=_HEADINGS[element.tag])]
    if element.tag in ("ul", "ol"):
        return _list_blocks(element, 0) + [Block("blank")]
    if element.tag == "blockquote":
        blocks = []
        for child in element:
            blocks.extend(_element_blocks(child))
        return blocks
    if element.tag == "pre":
        lines = unescape("".join(element.itertext())).splitlines()
        return [Block("paragraph", line.rstrip()) for line in lines if line.strip()] + [Block("blank")]
    if element.tag == "hr":
        return [Block("blank")]

    text = _text(element)
    return [Block("paragraph", text), Block("blank")] if text else []


def to_blocks(text: str) -> list[Block]:
    _, root = _parse(text)
    blocks: list[Block] = []
    for element in root:
        for block in _element_blocks(element):
            if block.kind == "blank" and (not blocks or blocks[-1].kind == "blank"):
                continue
            blocks.append(block)

    while blocks and blocks[-1].kind == "blank":
        blocks.pop()
    return blocks
