from collections.abc import Sequence

from models.rag_types import GroundingContext, Source
from tools.web.url_utils import normalize_url
from utils.logger import get_logger

logger = get_logger(__name__)

BLOCK_SEPARATOR = "\n\n"


class ContextBuilder:
    """
    Packs ranked sources into a character-bounded grounding context.

    Sources are taken in the order given. Each becomes a numbered block; the
    number is the citation index the model is asked to use. When the next block
    does not fit, it is cut to the remaining room (even mid-header) and building
    stops there.
    """

    def format_header(self, index: int, source: Source) -> str:
        return f"[{index}] {source.title}\nURL: {source.url}"

    def format_block(self, index: int, source: Source) -> str:
        header = self.format_header(index, source)
        if not source.snippet:
            return header
        return f"{header}\n{source.snippet}"

    def build(self, sources: Sequence[Source], budget: int) -> GroundingContext:
        if budget <= 0 or not sources:
            return GroundingContext(sources=(), text="", budget=max(budget, 0))

        included: list[Source] = []
        blocks: list[str] = []
        seen: set[str] = set()
        used = 0

        for source in sources:
            key = normalize_url(source.url) or source.url
            if key in seen:
                continue

            index = len(included) + 1
            separator = BLOCK_SEPARATOR if blocks else ""
            room = budget - used - len(separator)
            block = self.format_block(index, source)

            if len(block) > room:
                partial = block[:room].rstrip() if room > 0 else ""
                if partial:
                    blocks.append(separator + partial)
                    included.append(source)
                    seen.add(key)
                    logger.debug(
                        f"Truncated source [{index}] to fit context budget",
                        extra={"extra_fields": {"url": source.url, "budget": budget}},
                    )
                break

            blocks.append(separator + block)
            included.append(source)
            seen.add(key)
            used += len(separator) + len(block)

        text = "".join(blocks)
        dropped = len(sources) - len(included)
        if dropped:
            logger.info(
                "Context budget or duplicates excluded sources",
                extra={
                    "extra_fields": {
                        "budget": budget,
                        "included": len(included),
                        "excluded": dropped,
                    }
                },
            )

        return GroundingContext(sources=tuple(included), text=text, budget=budget)
