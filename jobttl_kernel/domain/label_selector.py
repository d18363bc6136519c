"""
LabelSelector -- Kubernetes label-selector parsing and matching.

Responsibility:
    Parses selector text in the standard Kubernetes grammar (equality,
    set membership, existence and integer comparison) and evaluates the
    resulting conjunction against a label set.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Consumed by ttl_defaulter.decide_ttl() and by the config validator for
    eager startup checks.

Invariants enforced:
    - The empty string matches every label set without being parsed.
    - Malformed text always raises LabelSelectorParseError; it is never
      treated as a non-match.
    - Parsed selectors are immutable and evaluation is deterministic.

Failure modes:
    - LabelSelectorParseError for any syntax error, invalid key, invalid
      value, or an operand of ``>`` / ``<`` that is not a 64-bit integer.
    - Empty values are rejected: ``app=``, ``app==``, ``app!=`` and
      ``app in (a,)`` all raise, although Kubernetes accepts them.  A
      selector with a dangling operator is treated as a typo, not as
      "label present with an empty value".
    - Only space, tab, CR and LF separate tokens.  Any other whitespace
      character becomes part of a key or value and fails validation.

Grammar::

    selector     := requirement ( "," requirement )*
    requirement  := "!" KEY
                  | KEY
                  | KEY ( "=" | "==" | "!=" ) VALUE
                  | KEY ( "in" | "notin" ) "(" VALUE ( "," VALUE )* ")"
                  | KEY ( ">" | "<" ) INTEGER
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from jobttl_kernel.exceptions import LabelSelectorParseError

MATCH_EVERYTHING = ""

_NAME_MAX_LENGTH = 63
_PREFIX_MAX_LENGTH = 253
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_NAME_RE = re.compile(r"([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]")
_DNS1123_SUBDOMAIN_RE = re.compile(
    r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*"
)
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


class Operator(str, Enum):
    """Selector requirement operators."""

    EQUALS = "="
    DOUBLE_EQUALS = "=="
    NOT_EQUALS = "!="
    IN = "in"
    NOT_IN = "notin"
    EXISTS = "exists"
    DOES_NOT_EXIST = "!"
    GREATER_THAN = ">"
    LESS_THAN = "<"


_SET_OPERATORS = frozenset({Operator.IN, Operator.NOT_IN})
_EXACT_OPERATORS = frozenset({
    Operator.EQUALS,
    Operator.DOUBLE_EQUALS,
    Operator.NOT_EQUALS,
    Operator.GREATER_THAN,
    Operator.LESS_THAN,
})


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------


class _Tok(str, Enum):
    IDENTIFIER = "identifier"
    BANG = "!"
    NOT_EQUALS = "!="
    EQUALS = "="
    DOUBLE_EQUALS = "=="
    GREATER_THAN = ">"
    LESS_THAN = "<"
    OPEN_PAR = "("
    CLOSED_PAR = ")"
    COMMA = ","
    END = "end of string"


_SYMBOLS: tuple[tuple[str, _Tok], ...] = (
    # Two-character symbols first so "!=" never lexes as "!" "="
    ("!=", _Tok.NOT_EQUALS),
    ("==", _Tok.DOUBLE_EQUALS),
    ("!", _Tok.BANG),
    ("=", _Tok.EQUALS),
    (">", _Tok.GREATER_THAN),
    ("<", _Tok.LESS_THAN),
    ("(", _Tok.OPEN_PAR),
    (")", _Tok.CLOSED_PAR),
    (",", _Tok.COMMA),
)
_SPECIAL_CHARS = frozenset("!=><(),")
# Other Unicode whitespace is part of an identifier and fails validation.
_WHITESPACE = frozenset(" \t\r\n")


def _parse_int64(text: str) -> int | None:
    """Signed 64-bit decimal, or None when the text is not one."""
    if not _INTEGER_RE.fullmatch(text):
        return None
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


@dataclass(frozen=True, slots=True)
class _Token:
    kind: _Tok
    text: str
    position: int


def _tokenize(selector: str) -> list[_Token]:
    tokens: list[_Token] = []
    i = 0
    n = len(selector)
    while i < n:
        ch = selector[i]
        if ch in _WHITESPACE:
            i += 1
            continue
        if ch in _SPECIAL_CHARS:
            for text, kind in _SYMBOLS:
                if selector.startswith(text, i):
                    tokens.append(_Token(kind, text, i))
                    i += len(text)
                    break
            continue
        start = i
        while i < n and selector[i] not in _WHITESPACE and selector[i] not in _SPECIAL_CHARS:
            i += 1
        tokens.append(_Token(_Tok.IDENTIFIER, selector[start:i], start))
    tokens.append(_Token(_Tok.END, "", n))
    return tokens


# ---------------------------------------------------------------------------
# Requirements
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Requirement:
    """
    One clause of a selector.

    Contract:
        ``matches()`` follows Kubernetes semantics: ``!=`` and ``notin`` are
        satisfied by an absent key; every other value operator needs the key
        present.
    """

    key: str
    operator: Operator
    values: frozenset[str] = frozenset()

    def matches(self, labels: Mapping[str, str]) -> bool:
        op = self.operator
        present = self.key in labels

        if op in (Operator.EQUALS, Operator.DOUBLE_EQUALS, Operator.IN):
            return present and labels[self.key] in self.values
        if op in (Operator.NOT_EQUALS, Operator.NOT_IN):
            return not present or labels[self.key] not in self.values
        if op is Operator.EXISTS:
            return present
        if op is Operator.DOES_NOT_EXIST:
            return not present

        # GREATER_THAN / LESS_THAN
        if not present:
            return False
        actual = _parse_int64(labels[self.key])
        if actual is None:
            return False
        (bound,) = self.values
        if op is Operator.GREATER_THAN:
            return actual > int(bound)
        return actual < int(bound)

    def __str__(self) -> str:
        if self.operator is Operator.EXISTS:
            return self.key
        if self.operator is Operator.DOES_NOT_EXIST:
            return f"!{self.key}"
        if self.operator in _SET_OPERATORS:
            return f"{self.key} {self.operator.value} ({','.join(sorted(self.values))})"
        (value,) = self.values
        return f"{self.key}{self.operator.value}{value}"


@dataclass(frozen=True, slots=True)
class LabelSelector:
    """A parsed selector: the conjunction of its requirements."""

    requirements: tuple[Requirement, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.requirements

    def matches(self, labels: Mapping[str, str]) -> bool:
        return all(r.matches(labels) for r in self.requirements)

    def __str__(self) -> str:
        return ",".join(str(r) for r in self.requirements)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    def __init__(self, selector: str):
        self._selector = selector
        self._tokens = _tokenize(selector)
        self._pos = 0

    def _peek(self) -> _Token:
        return self._tokens[self._pos]

    def _next(self) -> _Token:
        tok = self._tokens[self._pos]
        if tok.kind is not _Tok.END:
            self._pos += 1
        return tok

    def _fail(self, tok: _Token, expected: str) -> LabelSelectorParseError:
        return LabelSelectorParseError(
            self._selector, tok.position, f"found '{tok.text}', expected: {expected}"
        )

    def parse(self) -> LabelSelector:
        requirements: list[Requirement] = []
        tok = self._peek()
        if tok.kind is _Tok.END:
            return LabelSelector()
        while True:
            tok = self._peek()
            if tok.kind not in (_Tok.IDENTIFIER, _Tok.BANG):
                raise self._fail(tok, "!, identifier, or 'end of string'")
            requirements.append(self._parse_requirement())
            tok = self._next()
            if tok.kind is _Tok.END:
                return LabelSelector(tuple(requirements))
            if tok.kind is not _Tok.COMMA:
                raise self._fail(tok, "',' or 'end of string'")
            following = self._peek()
            if following.kind not in (_Tok.IDENTIFIER, _Tok.BANG):
                raise self._fail(following, "identifier after ','")

    def _parse_requirement(self) -> Requirement:
        negated = False
        if self._peek().kind is _Tok.BANG:
            self._next()
            negated = True
        key_tok = self._next()
        if key_tok.kind is not _Tok.IDENTIFIER or key_tok.text in ("in", "notin"):
            raise self._fail(key_tok, "identifier")
        key = key_tok.text
        self._validate_key(key, key_tok.position)

        if negated:
            return Requirement(key, Operator.DOES_NOT_EXIST)
        if self._peek().kind in (_Tok.END, _Tok.COMMA):
            return Requirement(key, Operator.EXISTS)

        operator = self._parse_operator()
        if operator in _SET_OPERATORS:
            values = self._parse_value_list()
        else:
            values = frozenset({self._parse_exact_value(operator)})
        return Requirement(key, operator, values)

    def _parse_operator(self) -> Operator:
        tok = self._next()
        if tok.kind is _Tok.EQUALS:
            return Operator.EQUALS
        if tok.kind is _Tok.DOUBLE_EQUALS:
            return Operator.DOUBLE_EQUALS
        if tok.kind is _Tok.NOT_EQUALS:
            return Operator.NOT_EQUALS
        if tok.kind is _Tok.GREATER_THAN:
            return Operator.GREATER_THAN
        if tok.kind is _Tok.LESS_THAN:
            return Operator.LESS_THAN
        if tok.kind is _Tok.IDENTIFIER and tok.text == "in":
            return Operator.IN
        if tok.kind is _Tok.IDENTIFIER and tok.text == "notin":
            return Operator.NOT_IN
        raise self._fail(tok, "=, !=, ==, >, <, in, notin")

    def _parse_exact_value(self, operator: Operator) -> str:
        tok = self._next()
        if tok.kind is not _Tok.IDENTIFIER:
            raise self._fail(tok, "identifier")
        self._validate_value(tok.text, tok.position)
        if operator in (Operator.GREATER_THAN, Operator.LESS_THAN):
            if _parse_int64(tok.text) is None:
                raise LabelSelectorParseError(
                    self._selector,
                    tok.position,
                    f"for '{operator.value}' the value must be an integer, got '{tok.text}'",
                )
        return tok.text

    def _parse_value_list(self) -> frozenset[str]:
        tok = self._next()
        if tok.kind is not _Tok.OPEN_PAR:
            raise self._fail(tok, "'('")
        values: set[str] = set()
        while True:
            tok = self._next()
            if tok.kind is not _Tok.IDENTIFIER:
                raise self._fail(tok, "identifier")
            self._validate_value(tok.text, tok.position)
            values.add(tok.text)
            tok = self._next()
            if tok.kind is _Tok.CLOSED_PAR:
                return frozenset(values)
            if tok.kind is not _Tok.COMMA:
                raise self._fail(tok, "',' or ')'")

    def _validate_key(self, key: str, position: int) -> None:
        prefix, slash, name = key.rpartition("/")
        if slash:
            if not prefix or "/" in prefix:
                raise LabelSelectorParseError(
                    self._selector, position, f"invalid label key '{key}': bad prefix"
                )
            if len(prefix) > _PREFIX_MAX_LENGTH or not _DNS1123_SUBDOMAIN_RE.fullmatch(prefix):
                raise LabelSelectorParseError(
                    self._selector,
                    position,
                    f"invalid label key '{key}': prefix must be a DNS-1123 subdomain",
                )
        if len(name) > _NAME_MAX_LENGTH or not _NAME_RE.fullmatch(name):
            raise LabelSelectorParseError(
                self._selector,
                position,
                f"invalid label key '{key}': name must be 1-{_NAME_MAX_LENGTH} "
                f"alphanumeric characters, '-', '_' or '.'",
            )

    def _validate_value(self, value: str, position: int) -> None:
        if len(value) > _NAME_MAX_LENGTH or not _NAME_RE.fullmatch(value):
            raise LabelSelectorParseError(
                self._selector,
                position,
                f"invalid label value '{value}': must be 1-{_NAME_MAX_LENGTH} "
                f"alphanumeric characters, '-', '_' or '.'",
            )


@lru_cache(maxsize=256)
def parse_selector(selector: str) -> LabelSelector:
    """
    Parse selector text into an immutable LabelSelector.

    Successful parses are cached; failures are not, so a malformed selector
    raises on every call.

    Raises:
        LabelSelectorParseError: if ``selector`` violates the grammar.
    """
    return _Parser(selector).parse()


def matches(selector: str, labels: Mapping[str, str]) -> bool:
    """
    Evaluate selector text against a label set.

    The empty string matches everything and is never parsed.

    Raises:
        LabelSelectorParseError: if ``selector`` is non-empty and malformed.
    """
    if selector == MATCH_EVERYTHING:
        return True
    return parse_selector(selector).matches(labels)
