"""Command-line tokenizing for the simulated git prompt."""

import re
from dataclasses import dataclass

SEPARATOR = "&&"

_TOKEN_RE = re.compile(r'"([^"]*)"?|\'([^\']*)\'?|(\S+)')


@dataclass(frozen=True)
class Token:
    text: str
    quoted: bool = False


@dataclass(frozen=True)
class ParsedCommand:
    """One ``git <verb> <args...>`` invocation."""

    raw: str
    program: str
    verb: str | None
    args: tuple[Token, ...]

    @property
    def words(self) -> tuple[str, ...]:
        """Argument texts without quoting information."""
        return tuple(t.text for t in self.args)

    def has_flag(self, *flags: str) -> bool:
        return any(t.text in flags and not t.quoted for t in self.args)

    def positional(self) -> list[str]:
        """Arguments that are not unquoted ``-x`` / ``--xx`` flags."""
        return [t.text for t in self.args if t.quoted or not t.text.startswith("-")]

    def option_value(self, *flags: str) -> Token | None:
        """The token following the first of ``flags``, if any."""
        for i, t in enumerate(self.args):
            if t.text in flags and not t.quoted:
                if i + 1 < len(self.args):
                    return self.args[i + 1]
                return None
        return None

    def message(self) -> str | None:
        """Commit message: quoted text after ``-m``, else the first quoted token."""
        value = self.option_value("-m", "--message")
        if value is not None and value.quoted:
            return value.text
        for t in self.args:
            if t.quoted:
                return t.text
        return None


def tokenize(text: str) -> list[Token]:
    """Split on whitespace, keeping single- or double-quoted text together.

    An unterminated quote runs to the end of the line.
    """
    tokens: list[Token] = []
    for m in _TOKEN_RE.finditer(text):
        double, single, bare = m.groups()
        if bare is not None:
            # "a&&b" is two commands, as in a shell
            parts = bare.split(SEPARATOR)
            for i, part in enumerate(parts):
                if i:
                    tokens.append(Token(SEPARATOR))
                if part:
                    tokens.append(Token(part))
        else:
            tokens.append(Token(double if double is not None else single, quoted=True))
    return tokens


def split_sequence(text: str) -> list[list[Token]]:
    """Split a line into command segments at unquoted ``&&`` tokens.

    Empty segments are dropped.
    """
    segments: list[list[Token]] = [[]]
    for token in tokenize(text):
        if token.text == SEPARATOR and not token.quoted:
            segments.append([])
        else:
            segments[-1].append(token)
    return [s for s in segments if s]


def parse(tokens: list[Token], raw: str = "") -> ParsedCommand:
    """Build a ``ParsedCommand`` from one segment's tokens."""
    if not tokens:
        return ParsedCommand(raw=raw, program="", verb=None, args=())
    program = tokens[0].text
    verb = tokens[1].text if len(tokens) > 1 else None
    return ParsedCommand(
        raw=raw or " ".join(t.text for t in tokens),
        program=program,
        verb=verb,
        args=tuple(tokens[2:]),
    )
