"""
Lesson script parsing.
"""

from .tokenizer import (
    Token,
    TokenKind,
    lex,
    tokenize,
    normalize_text,
    lookup_key,
    strip_answer_delimiters,
    format_for_speech,
)

__all__ = [
    'Token',
    'TokenKind',
    'lex',
    'tokenize',
    'normalize_text',
    'lookup_key',
    'strip_answer_delimiters',
    'format_for_speech'
]
