"""
Explicit page representation handed to every detector.

A `PageContext` bundles the parsed document, its script elements and a
snapshot of the JavaScript globals detectors care about. It is built once per
analysis and never mutated, so detectors stay pure functions of it.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag
from bs4.element import (
    CData,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
)

DEFAULT_PORTS = {"http": 80, "https": 443}

_NON_RENDERED_TAGS = {"script", "style", "noscript", "template", "head", "title"}
_SKIPPED_STRING_TYPES = (Comment, Doctype, Declaration, ProcessingInstruction, CData)
_BLOCK_TAGS = {
    "address", "article", "aside", "blockquote", "body", "br", "dd", "div", "dl",
    "dt", "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3",
    "h4", "h5", "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre",
    "section", "table", "td", "th", "tr", "ul",
}


def url_origin(url: str) -> str:
    """
    Return the `scheme://host[:port]` origin of an absolute URL.

    Default ports are dropped so `https://a.com:443/x` and `https://a.com/y`
    compare equal. Returns an empty string for URLs without scheme or host.
    """

    parsed = urlparse(url)
    scheme = (parsed.scheme or "").lower()
    host = (parsed.hostname or "").lower()
    if not scheme or not host:
        return ""
    try:
        port = parsed.port
    except ValueError:
        return ""
    if port is None or DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def visible_text(node: Tag | None) -> str:
    """
    Approximate the browser's `innerText` for a node.

    Strings inside script/style-like elements are skipped, and a newline is
    inserted whenever the enclosing block-level element changes.
    """

    if node is None:
        return ""

    parts: list[str] = []
    previous_block: Tag | None = None
    for string in node.find_all(string=True):
        if isinstance(string, _SKIPPED_STRING_TYPES):
            continue
        if any(parent.name in _NON_RENDERED_TAGS for parent in string.parents):
            continue
        block = _block_ancestor(string)
        if parts and block is not previous_block:
            parts.append("\n")
        previous_block = block
        parts.append(str(string))
    lines = (" ".join(line.split()) for line in "".join(parts).splitlines())
    return "\n".join(line for line in lines if line)


def _block_ancestor(string: NavigableString) -> Tag | None:
    for parent in string.parents:
        if parent.name in _BLOCK_TAGS:
            return parent
    return None


@dataclass(frozen=True)
class GlobalBinding:
    """
    Snapshot of one JavaScript global (or dotted path) at capture time.

    `value` is a JSON-safe projection and is None for functions or values
    that could not be serialized; `keys` lists own keys of object values.
    """

    type_name: str
    truthy: bool
    value: Any = None
    keys: tuple[str, ...] = ()

    @property
    def is_defined(self) -> bool:
        return self.type_name != "undefined"

    @property
    def is_function(self) -> bool:
        return self.type_name == "function"


@dataclass(frozen=True)
class ScriptElement:
    """
    One `<script>` element: resolved `src`, inline content and raw attributes.
    """

    src: str | None
    content: str
    attributes: Mapping[str, str] = field(default_factory=dict)

    @property
    def delayed_src(self) -> str | None:
        return self.attributes.get("data-two_delay_src") or None

    @property
    def delayed_id(self) -> str | None:
        return self.attributes.get("data-two_delay_id") or None


class PageContext:
    """
    Read-only view of one page for detectors.
    """

    def __init__(
        self,
        *,
        url: str,
        document: BeautifulSoup,
        globals_snapshot: Mapping[str, GlobalBinding] | None = None,
        body_text: str | None = None,
    ) -> None:
        self.url = url
        self.origin = url_origin(url)
        self.document = document
        self.globals: Mapping[str, GlobalBinding] = dict(globals_snapshot or {})
        self._body_text = body_text
        self.scripts: tuple[ScriptElement, ...] = tuple(
            self._script_element(tag) for tag in document.find_all("script")
        )

    @classmethod
    def from_markup(
        cls,
        markup: str,
        url: str,
        *,
        globals_snapshot: Mapping[str, GlobalBinding] | None = None,
        body_text: str | None = None,
        parser: str = "html.parser",
    ) -> "PageContext":
        return cls(
            url=url,
            document=BeautifulSoup(markup, parser),
            globals_snapshot=globals_snapshot,
            body_text=body_text,
        )

    def _script_element(self, tag: Tag) -> ScriptElement:
        attributes = {
            name: " ".join(value) if isinstance(value, list) else str(value)
            for name, value in tag.attrs.items()
        }
        raw_src = attributes.get("src", "").strip()
        return ScriptElement(
            src=self.resolve(raw_src) if raw_src else None,
            content=tag.string or tag.get_text() or "",
            attributes=attributes,
        )

    def resolve(self, href: str) -> str:
        return urljoin(self.url, href)

    # -- document queries ---------------------------------------------------

    def select(self, selector: str) -> list[Tag]:
        return self.document.select(selector)

    def has_element(self, selector: str) -> bool:
        return self.document.select_one(selector) is not None

    def anchors(self) -> Iterator[Tag]:
        yield from self.document.find_all("a")

    def forms(self) -> list[Tag]:
        return self.document.find_all("form")

    def iframe_sources(self) -> list[str]:
        sources: list[str] = []
        for iframe in self.document.find_all("iframe"):
            src = str(iframe.get("src") or "").strip()
            if src:
                sources.append(self.resolve(src))
        return sources

    def script_sources(self) -> list[str]:
        """
        Script URLs including deferred-loader `data-two_delay_src` values.
        """

        sources: list[str] = []
        for script in self.scripts:
            candidate = script.src or script.delayed_src
            if candidate:
                sources.append(candidate)
        return sources

    def meta_generator(self) -> str | None:
        for meta in self.document.find_all("meta"):
            name = str(meta.get("name") or "").strip().lower()
            content = str(meta.get("content") or "").strip()
            if name == "generator" and content:
                return content
        return None

    @property
    def has_html_doctype(self) -> bool:
        for item in self.document.contents:
            if isinstance(item, Doctype):
                return str(item).strip().lower().split(" ")[0] == "html"
        return False

    @property
    def body_classes(self) -> list[str]:
        body = self.document.body
        if body is None:
            return []
        classes = body.get("class") or []
        return list(classes) if isinstance(classes, list) else str(classes).split()

    @property
    def body_text(self) -> str:
        if self._body_text is None:
            root = self.document.body or self.document
            self._body_text = visible_text(root)
        return self._body_text

    @property
    def markup(self) -> str:
        return str(self.document)

    # -- globals snapshot ---------------------------------------------------

    def binding(self, path: str) -> GlobalBinding | None:
        return self.globals.get(path)

    def has_global(self, path: str) -> bool:
        binding = self.binding(path)
        return binding is not None and binding.is_defined

    def global_truthy(self, path: str) -> bool:
        binding = self.binding(path)
        return binding is not None and binding.truthy

    def global_value(self, path: str) -> Any:
        binding = self.binding(path)
        return binding.value if binding is not None else None

    def global_is_function(self, path: str) -> bool:
        binding = self.binding(path)
        return binding is not None and binding.is_function
