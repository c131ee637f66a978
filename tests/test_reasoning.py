import pytest

from api.reasoning import strip_reasoning


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("<think>secret plan</think>Answer [1]", "Answer [1]"),
        ("<thinking>\nstep 1\nstep 2\n</thinking>\n\nFinal answer.", "Final answer."),
        ("Intro <reasoning>hidden</reasoning> outro", "Intro  outro"),
        ("<THINK>upper</THINK>Done", "Done"),
        ("leaked deliberation</think>The answer", "The answer"),
        ("\n  <think>cut off mid thought", ""),
    ],
)
def test_strips_reasoning_segments(raw, expected):
    text, stripped = strip_reasoning(raw)
    assert text == expected
    assert stripped is True


@pytest.mark.unit
def test_prose_mentioning_a_tag_is_kept():
    raw = "Wrap the chain in a <reasoning> element; then close it. Done."
    assert strip_reasoning(raw) == (raw, False)


@pytest.mark.unit
def test_plain_text_is_untouched():
    text, stripped = strip_reasoning("  Just an answer.  ")
    assert text == "Just an answer."
    assert stripped is False


@pytest.mark.unit
def test_only_reasoning_yields_empty_text():
    text, stripped = strip_reasoning("<think>nothing else</think>")
    assert text == ""
    assert stripped is True


@pytest.mark.unit
def test_none_is_empty():
    assert strip_reasoning(None) == ("", False)
