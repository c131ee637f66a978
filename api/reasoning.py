"""
Removal of model "thinking" segments from completion text.

Reasoning models (DeepSeek R1 and its merges, QwQ, ...) may emit their
deliberation inline, wrapped in tags such as ``<think>...</think>``. Only the
text outside those segments is the answer. Swapping to a model with a different
delimiter only requires touching REASONING_TAGS.
"""

import re

REASONING_TAGS = ("think", "thinking", "reasoning")

_TAG_GROUP = "|".join(REASONING_TAGS)

# complete <think>...</think> blocks
_BLOCK = re.compile(rf"<(?P<tag>{_TAG_GROUP})\b[^>]*>.*?</(?P=tag)\s*>", re.IGNORECASE | re.DOTALL)
# some providers drop the opening tag and only send "...</think>answer"
_DANGLING_CLOSE = re.compile(rf"^.*?</(?:{_TAG_GROUP})\s*>", re.IGNORECASE | re.DOTALL)
# output cut off mid-deliberation: "<think> ... <EOF>"; only at the very start so
# prose that merely mentions a tag survives
_UNTERMINATED_OPEN = re.compile(rf"\A\s*<(?:{_TAG_GROUP})\b[^>]*>.*\Z", re.IGNORECASE | re.DOTALL)


def strip_reasoning(text: str | None) -> tuple[str, bool]:
    """
    Remove reasoning segments from model output.

    Args:
        text: Raw completion text

    Returns:
        (visible_text, stripped) where ``stripped`` tells whether anything was removed
    """
    if not text:
        return "", False

    visible = _BLOCK.sub("", text)
    visible = _DANGLING_CLOSE.sub("", visible, count=1)
    visible = _UNTERMINATED_OPEN.sub("", visible, count=1)

    stripped = visible != text
    return visible.strip(), stripped
