"""Dependency specification parser for depi.

Compiles the compact dependency mini-language into
:class:`~depi.models.ParsedRequest` objects.

Grammar of one token::

    name[@version][:feature,feature...][!kind]

``@`` opens the version section (only from the name), ``:`` opens the
features section (from the name or the version) and ``!`` opens the kind
section (from any other section). Each delimiter may be used once and only
when the next character is alphanumeric. A specification string holds
several tokens separated by ``/``; a segment may also be a macro group
(``+web``, ``+web!dev``) or a user alias, expanded before parsing.

Typical usage::

    outcome = parse_dependencies("serde@1.0.200:derive/+cli/tokio!dev", aliases)
    outcome.raise_for_errors()
    for request in outcome.requests:
        print(request.name, request.version_constraint)
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from depi.constants import MACRO_GROUPS, MACRO_PREFIX, TOKEN_SEPARATOR
from depi.exceptions import (
    EmptyTokenError,
    SpecificationError,
    TokenParseError,
)
from depi.models.dependency import ParsedRequest
from depi.utils.logger import get_logger

logger = get_logger("core.parser")

__all__ = ["ParseOutcome", "parse_dependencies", "parse_token"]


class State(enum.Enum):
    """Section of the token currently being accumulated."""

    NAME = "name"
    VERSION = "version"
    FEATURES = "features"
    TARGET = "target"


class CharClass(enum.Enum):
    ALNUM = "alnum"
    DOT = "."
    COMMA = ","
    DASH = "-"
    UNDERSCORE = "_"
    AT = "@"
    COLON = ":"
    BANG = "!"
    OTHER = "other"


class Action(enum.Enum):
    APPEND = "append"
    OPEN = "open"


_PUNCTUATION = {c.value: c for c in CharClass if len(c.value) == 1}


def _classify(char: str) -> CharClass:
    if char.isalnum():
        return CharClass.ALNUM
    return _PUNCTUATION.get(char, CharClass.OTHER)


def _build_dispatch() -> Dict[Tuple[State, CharClass], Tuple[Action, State]]:
    table: Dict[Tuple[State, CharClass], Tuple[Action, State]] = {}

    accepted = {
        State.NAME: (CharClass.ALNUM, CharClass.DASH, CharClass.UNDERSCORE),
        State.VERSION: (
            CharClass.ALNUM,
            CharClass.DOT,
            CharClass.DASH,
            CharClass.UNDERSCORE,
        ),
        State.FEATURES: (
            CharClass.ALNUM,
            CharClass.COMMA,
            CharClass.DASH,
            CharClass.UNDERSCORE,
        ),
        State.TARGET: (CharClass.ALNUM, CharClass.DASH, CharClass.UNDERSCORE),
    }
    for state, classes in accepted.items():
        for char_class in classes:
            table[(state, char_class)] = (Action.APPEND, state)

    table[(State.NAME, CharClass.AT)] = (Action.OPEN, State.VERSION)
    for state in (State.NAME, State.VERSION):
        table[(state, CharClass.COLON)] = (Action.OPEN, State.FEATURES)
    for state in (State.NAME, State.VERSION, State.FEATURES):
        table[(state, CharClass.BANG)] = (Action.OPEN, State.TARGET)

    return table


#: ``(state, char class) -> (action, next state)``; absent pairs are errors.
DISPATCH: Dict[Tuple[State, CharClass], Tuple[Action, State]] = _build_dispatch()


def parse_token(token: str) -> ParsedRequest:
    """Parse a single dependency token.

    Args:
        token: One ``/``-free token, e.g. ``"tokio@1.37.0:full,macros!dev"``.

    Returns:
        The parsed request.

    Raises:
        EmptyTokenError: The token is empty after trimming whitespace.
        TokenParseError: An invalid character, a repeated or misplaced
            delimiter, or an empty package name.

    Example::

        >>> parse_token("serde@1.0:derive!build")
        ParsedRequest(name='serde', version_constraint='1.0', feature_list='derive', kind_tag='build')
    """
    text = token.strip()
    if not text:
        raise EmptyTokenError(token)

    sections: Dict[State, List[str]] = {state: [] for state in State}
    opened = {State.VERSION: False, State.FEATURES: False, State.TARGET: False}
    state = State.NAME

    def fail(message: str, char: str, position: int) -> TokenParseError:
        return TokenParseError(
            message,
            token=text,
            state=state.value,
            char=char,
            position=position,
            name="".join(sections[State.NAME]),
            version="".join(sections[State.VERSION]),
            features="".join(sections[State.FEATURES]),
            target="".join(sections[State.TARGET]),
        )

    for position, char in enumerate(text):
        char_class = _classify(char)
        entry = DISPATCH.get((state, char_class))

        if entry is None:
            if char_class in (CharClass.AT, CharClass.COLON, CharClass.BANG):
                raise fail(
                    f"Delimiter '{char}' is not allowed in the {state.value} section",
                    char,
                    position,
                )
            raise fail(
                f"Invalid character '{char}' in the {state.value} section",
                char,
                position,
            )

        action, next_state = entry
        if action is Action.APPEND:
            sections[state].append(char)
            continue

        following = text[position + 1 : position + 2]
        if opened[next_state]:
            raise fail(f"Delimiter '{char}' used more than once", char, position)
        if not following.isalnum():
            raise fail(
                f"Delimiter '{char}' must be followed by a letter or digit",
                char,
                position,
            )
        opened[next_state] = True
        state = next_state

    name = "".join(sections[State.NAME])
    if not name:
        raise TokenParseError(
            "Missing package name",
            token=text,
            state=state.value,
            version="".join(sections[State.VERSION]),
            features="".join(sections[State.FEATURES]),
            target="".join(sections[State.TARGET]),
        )

    return ParsedRequest(
        name=name,
        version_constraint="".join(sections[State.VERSION]),
        feature_list="".join(sections[State.FEATURES]),
        kind_tag="".join(sections[State.TARGET]),
    )


# ---------------------------------------------------------------------------
# Specification strings
# ---------------------------------------------------------------------------

_MACRO_SEGMENT = re.compile(
    re.escape(MACRO_PREFIX) + r"(?P<group>[^!]*)(?:!(?P<kind>.*))?", re.DOTALL
)


@dataclass
class ParseOutcome:
    """Best-effort result of parsing a specification string.

    Attributes:
        requests: Successfully parsed requests, in input order.
        errors: One error per token that failed to parse.
    """

    requests: List[ParsedRequest] = field(default_factory=list)
    errors: List[TokenParseError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise :class:`SpecificationError` if any token failed."""
        if self.errors:
            raise SpecificationError(self.errors)

    def _collect(self, token: str) -> None:
        try:
            self.requests.append(parse_token(token))
        except TokenParseError as exc:
            logger.debug("Token %r rejected: %s", token, exc)
            self.errors.append(exc)


def parse_dependencies(
    text: str,
    aliases: Optional[Mapping[str, str]] = None,
    macros: Mapping[str, Sequence[str]] = MACRO_GROUPS,
) -> ParseOutcome:
    """Parse a ``/``-separated specification string.

    Each segment is expanded before parsing, in this order:

    1. Macro group: ``+group`` or ``+group!kind`` becomes the group's
       canonical tokens; ``kind`` is applied to expansions that do not set
       one themselves.
    2. Alias: a segment equal to an alias name is replaced by the alias
       expansion, split on ``/``. Expansions are not looked up again.
    3. Anything else is parsed as a token.

    Parsing never stops at the first bad token; all failures are collected
    in :attr:`ParseOutcome.errors`.

    Args:
        text: Specification string typed by the user.
        aliases: Alias name to expansion string mapping.
        macros: Macro group name to canonical tokens mapping.

    Returns:
        A :class:`ParseOutcome`.
    """
    aliases = aliases or {}
    outcome = ParseOutcome()

    for raw_segment in text.strip().split(TOKEN_SEPARATOR):
        segment = raw_segment.strip()

        if segment.startswith(MACRO_PREFIX):
            _expand_macro(segment, macros, outcome)
        elif segment in aliases:
            expansion = aliases[segment]
            logger.debug("Alias %r expands to %r", segment, expansion)
            for sub_token in expansion.split(TOKEN_SEPARATOR):
                outcome._collect(sub_token)
        else:
            outcome._collect(segment)

    logger.debug(
        "Parsed %d request(s), %d error(s) from %r",
        len(outcome.requests),
        len(outcome.errors),
        text,
    )
    return outcome


def _expand_macro(
    segment: str,
    macros: Mapping[str, Sequence[str]],
    outcome: ParseOutcome,
) -> None:
    match = _MACRO_SEGMENT.fullmatch(segment)
    group = match.group("group") if match else ""
    kind = (match.group("kind") or "") if match else ""

    if match and match.group("kind") is not None and not kind[:1].isalnum():
        outcome.errors.append(
            TokenParseError(
                "Delimiter '!' must be followed by an alphanumeric character",
                token=segment,
                char="!",
                position=len(MACRO_PREFIX) + len(group),
            )
        )
        return

    if group not in macros:
        outcome.errors.append(
            TokenParseError(f"Unknown macro group '{group}'", token=segment)
        )
        return

    logger.debug("Macro group %r expands to %s", group, list(macros[group]))
    for expansion in macros[group]:
        outcome._collect(_apply_kind(expansion, kind))


def _apply_kind(token: str, kind: str) -> str:
    """Append ``!kind`` to ``token`` unless it already names a kind."""
    if not kind or "!" in token:
        return token
    return f"{token}!{kind}"
