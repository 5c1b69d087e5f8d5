"""Small HTML scraping helper.

Pages are parsed with the standard library ``HTMLParser`` into a light tree
and queried with a subset of CSS selectors: tag names, ``#id``, ``.class``,
``[attr]``, ``[attr=value]``, ``[attr^=value]``, ``[attr*=value]`` and
``[attr$=value]``, combined into compounds and joined by the descendant
combinator (whitespace).
"""

import re
from html.parser import HTMLParser
from typing import Iterator, Optional, Union

VOID_ELEMENTS = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "link", "meta", "param", "source", "track", "wbr",
    }
)


class ScrapeError(Exception):
    """Expected element or attribute missing from a page."""


class Element:
    """A parsed HTML element."""

    def __init__(self, tag: str, attrs: dict, parent: Optional["Element"] = None):
        self.tag = tag
        self.attrs = attrs
        self.parent = parent
        self.children: list[Union["Element", str]] = []

    def __repr__(self) -> str:
        return f"<Element {self.tag} {self.attrs}>"

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self.attrs.get(name)
        return default if value is None else value

    @property
    def classes(self) -> set[str]:
        return set((self.attrs.get("class") or "").split())

    @property
    def text(self) -> str:
        """Whitespace-normalized text of this element and its descendants."""
        parts = []
        self._collect_text(parts)
        return " ".join("".join(parts).split())

    def _collect_text(self, parts: list) -> None:
        for child in self.children:
            if isinstance(child, str):
                parts.append(child)
            else:
                child._collect_text(parts)

    def iter(self) -> Iterator["Element"]:
        """Iterate descendants in document order."""
        for child in self.children:
            if isinstance(child, Element):
                yield child
                yield from child.iter()

    def select(self, selector: str) -> list["Element"]:
        compounds = _parse_selector(selector)
        return [node for node in self.iter() if _matches(node, compounds)]

    def select_one(self, selector: str) -> Optional["Element"]:
        compounds = _parse_selector(selector)
        for node in self.iter():
            if _matches(node, compounds):
                return node
        return None

    def form_fields(self) -> dict[str, str]:
        """Collect the named ``input`` values below this element."""
        fields = {}
        for node in self.iter():
            if node.tag == "input" and node.get("name"):
                fields[node.get("name")] = node.get("value", "")
        return fields


class _TreeBuilder(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.root = Element("#document", {})
        self._stack = [self.root]

    def handle_starttag(self, tag, attrs):
        node = Element(tag, {name: value or "" for name, value in attrs}, self._stack[-1])
        self._stack[-1].children.append(node)
        if tag not in VOID_ELEMENTS:
            self._stack.append(node)

    def handle_startendtag(self, tag, attrs):
        node = Element(tag, {name: value or "" for name, value in attrs}, self._stack[-1])
        self._stack[-1].children.append(node)

    def handle_endtag(self, tag):
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                return

    def handle_data(self, data):
        self._stack[-1].children.append(data)


_TOKEN_RE = re.compile(
    r"""
    (?P<tag>^(?:\*|[a-zA-Z][\w-]*))
    | \#(?P<id>[\w-]+)
    | \.(?P<cls>[\w-]+)
    | \[\s*(?P<attr>[\w:-]+)\s*(?:(?P<op>[*^$]?=)\s*(?P<quote>["']?)(?P<value>.*?)(?P=quote))?\s*\]
    """,
    re.VERBOSE,
)


def _parse_compound(text: str) -> list[tuple]:
    tests = []
    position = 0
    while position < len(text):
        match = _TOKEN_RE.match(text, position)
        if not match or match.end() == position:
            raise ValueError(f"Unsupported selector: {text!r}")
        if match.group("tag"):
            if match.group("tag") != "*":
                tests.append(("tag", match.group("tag").lower()))
        elif match.group("id"):
            tests.append(("attr", "id", "=", match.group("id")))
        elif match.group("cls"):
            tests.append(("class", match.group("cls")))
        else:
            tests.append(("attr", match.group("attr"), match.group("op"), match.group("value")))
        position = match.end()
    return tests


def _split_selector(selector: str) -> list[str]:
    parts, current, depth = [], "", 0
    for char in selector.strip():
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        if char.isspace() and depth == 0:
            if current:
                parts.append(current)
            current = ""
        else:
            current += char
    if current:
        parts.append(current)
    return parts


def _parse_selector(selector: str) -> list[list[tuple]]:
    return [_parse_compound(part) for part in _split_selector(selector)]


def _matches_compound(node: Element, tests: list[tuple]) -> bool:
    for test in tests:
        if test[0] == "tag":
            if node.tag != test[1]:
                return False
        elif test[0] == "class":
            if test[1] not in node.classes:
                return False
        else:
            _, name, op, expected = test
            actual = node.attrs.get(name)
            if actual is None:
                return False
            if op == "=" and actual != expected:
                return False
            if op == "^=" and not actual.startswith(expected):
                return False
            if op == "$=" and not actual.endswith(expected):
                return False
            if op == "*=" and expected not in actual:
                return False
    return True


def _matches(node: Element, compounds: list[list[tuple]]) -> bool:
    if not compounds or not _matches_compound(node, compounds[-1]):
        return False
    remaining = compounds[:-1]
    ancestor = node.parent
    while remaining and ancestor is not None:
        if _matches_compound(ancestor, remaining[-1]):
            remaining = remaining[:-1]
        ancestor = ancestor.parent
    return not remaining


class Page:
    """A parsed HTML document with field extraction helpers.

    Args:
        html: Raw page markup
        url: Address the page was loaded from, used in error messages
    """

    def __init__(self, html: str, url: str = ""):
        builder = _TreeBuilder()
        builder.feed(html or "")
        builder.close()
        self.root = builder.root
        self.url = url

    def select(self, selector: str) -> list[Element]:
        return self.root.select(selector)

    def select_one(self, selector: str) -> Optional[Element]:
        return self.root.select_one(selector)

    def has(self, selector: str) -> bool:
        return self.select_one(selector) is not None

    def require(self, selector: str) -> Element:
        """Return the first element matching ``selector``.

        Raises:
            ScrapeError: If nothing matches
        """
        node = self.select_one(selector)
        if node is None:
            raise ScrapeError(f"Element {selector!r} not found on {self.url or 'page'}")
        return node

    def attribute(self, selector: str, name: str) -> str:
        """Return attribute ``name`` of the first element matching ``selector``.

        Raises:
            ScrapeError: If the element or the attribute is missing
        """
        value = self.require(selector).get(name)
        if not value:
            raise ScrapeError(
                f"Attribute {name!r} of {selector!r} not found on {self.url or 'page'}"
            )
        return value
