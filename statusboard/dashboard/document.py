"""Fragment model of the dashboard document.

The hand-authored HTML is split once into an ordered list of fragments:
plain text the updater never touches, and *managed* fragments it owns::

    <span class="badge"><!-- sb:cron-badge -->7/9<!-- /sb:cron-badge --></span>

A managed fragment is created the first time a rule locates (or inserts) its
span, and from then on it is addressed by name.  Re-running the same rules on
the same data therefore rewrites each fragment with identical bytes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_FRAGMENT_RE = re.compile(
    r"<!-- sb:(?P<name>[\w.-]+) -->(?P<body>.*?)<!-- /sb:(?P=name) -->",
    re.DOTALL,
)


def open_marker(name: str) -> str:
    return f"<!-- sb:{name} -->"


def close_marker(name: str) -> str:
    return f"<!-- /sb:{name} -->"


@dataclass
class Fragment:
    body: str
    name: str | None = None

    @property
    def managed(self) -> bool:
        return self.name is not None

    def render(self) -> str:
        if self.name is None:
            return self.body
        return f"{open_marker(self.name)}{self.body}{close_marker(self.name)}"


class Document:
    """Ordered fragments; ``serialize(parse(text)) == text`` for any input."""

    def __init__(self, fragments: list[Fragment]) -> None:
        self.fragments = fragments

    @classmethod
    def parse(cls, text: str) -> Document:
        fragments: list[Fragment] = []
        pos = 0
        for m in _FRAGMENT_RE.finditer(text):
            if m.start() > pos:
                fragments.append(Fragment(text[pos:m.start()]))
            fragments.append(Fragment(m.group("body"), m.group("name")))
            pos = m.end()
        if pos < len(text):
            fragments.append(Fragment(text[pos:]))
        return cls(fragments)

    def serialize(self) -> str:
        return "".join(f.render() for f in self.fragments)

    def names(self) -> list[str]:
        return [f.name for f in self.fragments if f.name is not None]

    def __contains__(self, name: str) -> bool:
        return any(f.name == name for f in self.fragments)

    def get(self, name: str) -> str | None:
        """Body of the named fragment, or None."""
        return next((f.body for f in self.fragments if f.name == name), None)

    def replace(self, name: str, body: str) -> bool:
        """Replace the body of every fragment called ``name``. False if there is none."""
        found = False
        for fragment in self.fragments:
            if fragment.name == name:
                fragment.body = body
                found = True
        return found

    def _managed_spans(self) -> list[tuple[int, int]]:
        spans = []
        pos = 0
        for fragment in self.fragments:
            length = len(fragment.render())
            if fragment.managed:
                spans.append((pos, pos + length))
            pos += length
        return spans

    def search(self, pattern: re.Pattern[str]) -> tuple[int, int] | None:
        """Locate ``pattern`` in the serialized document.

        The span is the ``body`` group if the pattern defines one, otherwise
        the whole match.  Candidates whose start or end falls inside a managed
        fragment are rejected; managed fragments lying entirely within the span
        are allowed (the caller supersedes them).
        """
        text = self.serialize()
        managed = self._managed_spans()
        use_group = "body" in pattern.groupindex
        for m in pattern.finditer(text):
            start, end = m.span("body") if use_group else m.span()
            if start < 0:
                continue
            if any(lo < start < hi or lo < end < hi for lo, hi in managed):
                continue
            return start, end
        return None

    def wrap(self, start: int, end: int, name: str, body: str) -> None:
        """Turn ``[start, end)`` into a managed fragment holding ``body``.

        Managed fragments inside the span disappear with it.
        """
        text = self.serialize()
        spliced = text[:start] + Fragment(body, name).render() + text[end:]
        self.fragments = Document.parse(spliced).fragments

    def insert(self, offset: int, name: str, body: str, *, before: str = "", after: str = "") -> None:
        """Insert a new managed fragment at ``offset``, padded with unmanaged text."""
        text = self.serialize()
        block = before + Fragment(body, name).render() + after
        self.fragments = Document.parse(text[:offset] + block + text[offset:]).fragments
