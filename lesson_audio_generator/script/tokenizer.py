"""
Lesson script tokenizer.

Splits raw lesson text into phrases separated by explicit pause markers of the
form ``[pause 3s]`` or ``[PAUSE 1.5s]``. Punctuation and line breaks are never
treated as pauses. Malformed markers stay in the text as literal characters.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import List, Union

from ..models import Phrase


logger = logging.getLogger(__name__)

PAUSE_MARKER = re.compile(r'\[pause\s+(\d+(?:\.\d+)?)s\]', re.IGNORECASE)

# Opening delimiter -> closing delimiter of a reusable answer phrase
QUOTE_PAIRS = {
    '"': '"',
    "'": "'",
    '“': '”',
    '«': '»',
    '„': '“',
    '‘': '’',
}

_TRAILING_ELLIPSIS = re.compile(r'(?:\.{3}|…|\.)\s*$')
_WHITESPACE = re.compile(r'\s+')


class TokenKind(Enum):
    TEXT = "text"
    PAUSE = "pause"


@dataclass
class Token:
    """Lexer token: literal text, or a pause duration in milliseconds."""
    kind: TokenKind
    value: Union[str, int]


def lex(raw_text: str) -> List[Token]:
    """Turn raw lesson text into a stream of TEXT and PAUSE tokens."""
    tokens: List[Token] = []
    position = 0
    for match in PAUSE_MARKER.finditer(raw_text):
        if match.start() > position:
            tokens.append(Token(TokenKind.TEXT, raw_text[position:match.start()]))
        seconds = float(match.group(1))
        tokens.append(Token(TokenKind.PAUSE, int(round(seconds * 1000))))
        position = match.end()

    if position < len(raw_text):
        tokens.append(Token(TokenKind.TEXT, raw_text[position:]))
    return tokens


def tokenize(raw_text: str) -> List[Phrase]:
    """
    Split a lesson script into phrases with their following pauses.

    Text between two markers, or between either end and the nearest marker,
    becomes one phrase carrying the pause that follows it. Text that is empty
    or consists only of whitespace and punctuation is dropped; a pause that
    follows dropped (or no) text is kept as a freestanding silence phrase with
    empty text, so no pause duration is ever lost.

    Args:
        raw_text: Lesson script

    Returns:
        Ordered list of phrases
    """
    phrases: List[Phrase] = []
    pending_text = None

    for token in lex(raw_text):
        if token.kind == TokenKind.TEXT:
            pending_text = token.value
            continue

        if pending_text is not None and is_speakable(pending_text):
            phrases.append(_make_phrase(pending_text, token.value))
        else:
            if pending_text is not None:
                logger.debug(f"Dropped unspeakable text before pause: {pending_text!r}")
            phrases.append(Phrase(text='', normalized='', reusable=False, pause_after_ms=token.value))
        pending_text = None

    if pending_text is not None:
        if is_speakable(pending_text):
            phrases.append(_make_phrase(pending_text, 0))
        else:
            logger.debug(f"Dropped unspeakable trailing text: {pending_text!r}")

    return phrases


def _make_phrase(text: str, pause_after_ms: int) -> Phrase:
    text = text.strip()
    return Phrase(
        text=text,
        normalized=normalize_text(text),
        reusable=is_reusable(text),
        pause_after_ms=pause_after_ms
    )


def is_speakable(text: str) -> bool:
    """True if the text contains anything besides whitespace and punctuation."""
    return any(
        not ch.isspace() and not unicodedata.category(ch).startswith('P')
        for ch in text
    )


def is_reusable(text: str) -> bool:
    """
    Whether a phrase is a quoted short answer worth persisting for reuse.

    The trimmed text must start and end with a matching quote pair; a trailing
    ellipsis after the closing quote is allowed.
    """
    text = text.strip()
    if not _is_quoted(text):
        text = _TRAILING_ELLIPSIS.sub('', text).rstrip()
    return _is_quoted(text) and is_speakable(text[1:-1])


def _is_quoted(text: str) -> bool:
    return len(text) >= 2 and QUOTE_PAIRS.get(text[0]) == text[-1]


def normalize_text(text: str) -> str:
    """Trim and collapse internal whitespace."""
    return _WHITESPACE.sub(' ', text).strip()


def lookup_key(text: str) -> str:
    """Case- and whitespace-insensitive key used for vocabulary lookups."""
    return normalize_text(text).casefold()


def strip_answer_delimiters(text: str) -> str:
    """
    Strip the quoting convention from a reusable phrase.

    ``"Tres bien..."`` and ``“Tres bien”.`` both become ``Tres bien``.
    """
    text = _TRAILING_ELLIPSIS.sub('', text.strip()).strip()
    if _is_quoted(text):
        text = text[1:-1]
    text = _TRAILING_ELLIPSIS.sub('', text.strip())
    return normalize_text(text)


def format_for_speech(text: str) -> str:
    """Wrap a vocabulary fragment the way it is sent to synthesis so endings are not clipped."""
    return f'"{normalize_text(text)}..."'
