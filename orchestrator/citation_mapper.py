"""
Maps citation markers in model output back to the sources of the grounding context.

Recognized markers:
- ``[2]``, ``[1, 3]``, ``[1; 3]``
- ``[Source 2]``, ``[Source 1, Source 3]``
- ``[https://example.com/page]``

A bare URL in prose that names a context source also counts as a citation; its
text is left untouched. Markers that do not resolve are removed from the text
and logged, never raised.
"""

import re

from models.errors import MalformedCitation
from models.rag_types import Answer, Citation, GroundingContext
from tools.web.url_utils import normalize_url
from utils.logger import get_logger

logger = get_logger(__name__)

_BRACKET = re.compile(r"(?P<lead>[ \t]?)\[(?P<body>[^\[\]\n]{1,500})\]")
_INDEX_GROUP = re.compile(
    r"^\s*(?:source\s*)?\d+(?:\s*[,;]\s*(?:source\s*)?\d+)*\s*$", re.IGNORECASE
)
_INDEX = re.compile(r"\d+")
_URL_BODY = re.compile(r"^\s*(https?://\S+?)\s*$", re.IGNORECASE)
_BARE_URL = re.compile(r"https?://[^\s<>\"'\)\]]+", re.IGNORECASE)
_TRAILING_PUNCT = ".,;:!?"


class CitationMapper:
    """Resolves model citation markers against the GroundingContext used for the prompt."""

    def map(self, raw_answer: str, context: GroundingContext) -> Answer:
        text = raw_answer or ""
        if context.is_empty:
            return Answer(text=text, citations=(), grounded=False)

        url_index = {normalize_url(s.url): i for i, s in enumerate(context.sources, start=1)}

        edits: list[tuple[int, int, str]] = []
        cited: list[tuple[int, int]] = []  # (position, source index)
        dropped: list[MalformedCitation] = []

        for match in _BRACKET.finditer(text):
            body = match.group("body")
            lead = match.group("lead")

            if _INDEX_GROUP.match(body):
                numbers = [int(n) for n in _INDEX.findall(body)]
                valid = [n for n in numbers if context.source_for_index(n) is not None]
                for n in numbers:
                    if n not in valid:
                        dropped.append(MalformedCitation(f"[{n}]", reason="index_out_of_range"))
                cited.extend((match.start(), n) for n in valid)

                if len(valid) == len(numbers):
                    continue
                replacement = lead + "".join(f"[{n}]" for n in valid) if valid else ""
                edits.append((match.start(), match.end(), replacement))
                continue

            url_match = _URL_BODY.match(body)
            if url_match:
                index = url_index.get(normalize_url(url_match.group(1).rstrip(_TRAILING_PUNCT)))
                if index is None:
                    dropped.append(MalformedCitation(f"[{body.strip()}]", reason="unknown_url"))
                    edits.append((match.start(), match.end(), ""))
                else:
                    cited.append((match.start(), index))

        marker_spans = [(m.start(), m.end()) for m in _BRACKET.finditer(text)]
        for match in _BARE_URL.finditer(text):
            if any(start <= match.start() < end for start, end in marker_spans):
                continue
            index = url_index.get(normalize_url(match.group(0).rstrip(_TRAILING_PUNCT)))
            if index is not None:
                cited.append((match.start(), index))

        for marker in dropped:
            logger.warning(
                "Dropped unresolved citation marker",
                extra={
                    "extra_fields": {
                        "marker": marker.marker,
                        "reason": marker.reason,
                        "context_sources": len(context.sources),
                    }
                },
            )

        citations: list[Citation] = []
        seen: set[int] = set()
        for _, index in sorted(cited, key=lambda item: item[0]):
            if index in seen:
                continue
            seen.add(index)
            source = context.sources[index - 1]
            citations.append(Citation(index=index, source_url=source.url, title=source.title))

        return Answer(
            text=self._apply_edits(text, edits),
            citations=tuple(citations),
            grounded=True,
            dropped_markers=tuple(m.marker for m in dropped),
        )

    @staticmethod
    def _apply_edits(text: str, edits: list[tuple[int, int, str]]) -> str:
        if not edits:
            return text
        parts = []
        cursor = 0
        for start, end, replacement in edits:
            parts.append(text[cursor:start])
            parts.append(replacement)
            cursor = end
        parts.append(text[cursor:])
        return "".join(parts).strip()
