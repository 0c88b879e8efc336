"""
Answer Codec - single-string encoding of question answers

Every question has exactly one answer slot holding a string. This module
maps between that string and the typed answer variants:

    text / date / rating     raw string                  SingleValue
    choice / dropdown        option, or "OTHER:<text>"   SingleValue | OtherAnnotated
    checkboxes               segments joined by "|||"    MultiValue

Known ambiguity: an option whose text literally starts with "OTHER:" decodes
as the other slot. The codec does not special-case it further.
"""

from typing import FrozenSet

from clinic_survey.contracts import (
    Answer,
    MultiValue,
    MULTI_SEPARATOR,
    OTHER_PREFIX,
    OtherAnnotated,
    Question,
    QuestionType,
    SingleValue,
)


def encode(question: Question, answer: Answer) -> str:
    """
    Encode an answer into its stored string form.

    Raises:
        ValueError: If the variant does not fit the question type, or a
                    checkbox segment contains the reserved separator
    """
    q_type = question.type

    if q_type == QuestionType.CHECKBOXES:
        if not isinstance(answer, MultiValue):
            raise ValueError(f"Question '{question.id}' (checkboxes) needs a MultiValue answer")

        segments = list(answer.selected)
        if answer.other is not None:
            segments.append(OTHER_PREFIX + answer.other)

        for segment in segments:
            if MULTI_SEPARATOR in segment:
                raise ValueError(
                    f"Answer segment {segment!r} contains reserved separator {MULTI_SEPARATOR!r}"
                )
        return MULTI_SEPARATOR.join(segments)

    if q_type in (QuestionType.CHOICE, QuestionType.DROPDOWN):
        if isinstance(answer, OtherAnnotated):
            return OTHER_PREFIX + answer.text
        if isinstance(answer, SingleValue):
            return answer.value
        raise ValueError(f"Question '{question.id}' ({q_type.value}) needs a single answer")

    # text, date, rating
    if not isinstance(answer, SingleValue):
        raise ValueError(f"Question '{question.id}' ({q_type.value}) needs a SingleValue answer")
    return answer.value


def decode(question: Question, raw: str) -> Answer:
    """Decode a stored string back into its answer variant."""
    q_type = question.type

    if q_type == QuestionType.CHECKBOXES:
        selected = []
        other = None
        for segment in split_segments(raw):
            if is_other(segment):
                other = segment[len(OTHER_PREFIX):]
            else:
                selected.append(segment)
        return MultiValue(selected=tuple(selected), other=other)

    if q_type in (QuestionType.CHOICE, QuestionType.DROPDOWN) and is_other(raw):
        return OtherAnnotated(text=raw[len(OTHER_PREFIX):])

    return SingleValue(raw)


def split_segments(raw: str) -> list:
    # "" is the encoding of "nothing selected", not one empty segment
    if not raw:
        return []
    return raw.split(MULTI_SEPARATOR)


def selected_set(raw: str) -> FrozenSet[str]:
    """Selected checkbox segments as a set, used for membership tests."""
    return frozenset(split_segments(raw))


def is_other(raw: str) -> bool:
    return raw.startswith(OTHER_PREFIX)
