"""
argfold tokenizer: raw argument strings → canonical lexical tokens.

Shapes
- LongOpt(name, inline)       "--name", "--name=value", "--name:value"
- ShortOpt(char, inline)      "-x", "-x=value", "-x:value"
- ShortOptCluster(chars)      "-xyz" (expanded or split later by the matcher)
- PlainToken(text, literal)   everything else, "-" alone, and anything after "--"
                              (literal=True: never a command word)

Every token also carries its 1-based `position` in the argument list and the
`raw` string it came from, so faults can say “at third position” and the matcher
can fall back to the raw text when an option-looking token is used as a value.

Nothing here looks at declarations; the matcher decides what a token means.
"""
from typing import NamedTuple


class LongOpt(NamedTuple):
    name: str
    inline: str | None
    position: int
    raw: str


class ShortOpt(NamedTuple):
    char: str
    inline: str | None
    position: int
    raw: str


class ShortOptCluster(NamedTuple):
    chars: str
    position: int
    raw: str


class PlainToken(NamedTuple):
    text: str
    position: int
    raw: str
    literal: bool = False


SEPARATORS = "=:"


def _split_inline(body):
    """
    split "name=value" / "name:value" at the first separator of either kind.
    """
    index = min((found for found in map(body.find, SEPARATORS) if found >= 0), default=-1)
    if index < 0:
        return body, None
    return body[:index], body[index + 1:]


def tokenize(arguments, /):
    """
    turn an ordered sequence of argument strings into canonical tokens.

    rules
    - "--" ends option recognition: it is dropped and every later argument is a
      literal PlainToken.
    - "--name[(=|:)value]" → LongOpt; an empty name ("--=x") stays plain.
    - "-x" → ShortOpt; "-x=value" / "-x:value" → ShortOpt with inline value.
    - "-xyz" → ShortOptCluster.
    - "-" and anything else → PlainToken.
    """
    tokens = []
    literal = False
    for position, raw in enumerate(arguments, 1):
        if not isinstance(raw, str):
            raise TypeError("tokenize() argument must be an iterable of strings")
        if literal:
            tokens.append(PlainToken(raw, position, raw, True))
        elif raw == "--":
            literal = True
        elif raw.startswith("--"):
            name, inline = _split_inline(raw[2:])
            if name:
                tokens.append(LongOpt(name, inline, position, raw))
            else:
                tokens.append(PlainToken(raw, position, raw))
        elif raw.startswith("-") and len(raw) > 1:
            if len(raw) == 2:
                tokens.append(ShortOpt(raw[1], None, position, raw))
            elif raw[2] in SEPARATORS:
                tokens.append(ShortOpt(raw[1], raw[3:], position, raw))
            else:
                tokens.append(ShortOptCluster(raw[1:], position, raw))
        else:
            tokens.append(PlainToken(raw, position, raw))
    return tokens


__all__ = (
    "LongOpt",
    "ShortOpt",
    "ShortOptCluster",
    "PlainToken",
    "tokenize",
)
