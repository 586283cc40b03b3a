"""Tests for command-line tokenizing."""

from gitsim.commands import Token, parse, split_sequence, tokenize


def words(text):
    return [t.text for t in tokenize(text)]


class TestTokenize:
    def test_whitespace(self):
        assert words("git   log  --oneline") == ["git", "log", "--oneline"]

    def test_double_quotes(self):
        tokens = tokenize('git commit -m "Add login page"')
        assert tokens[-1] == Token("Add login page", quoted=True)

    def test_single_quotes(self):
        assert words("git commit -m 'two words'") == ["git", "commit", "-m", "two words"]

    def test_unterminated_quote_runs_to_end(self):
        assert words('git commit -m "no end') == ["git", "commit", "-m", "no end"]

    def test_empty_quotes(self):
        tokens = tokenize('git commit -m ""')
        assert tokens[-1] == Token("", quoted=True)

    def test_glued_separator(self):
        assert words("git add .&&git log") == ["git", "add", ".", "&&", "git", "log"]


class TestSplitSequence:
    def test_single(self):
        assert len(split_sequence("git log")) == 1

    def test_chain(self):
        segments = split_sequence('git add . && git commit -m "x" && git log')
        assert [[t.text for t in s] for s in segments] == [
            ["git", "add", "."],
            ["git", "commit", "-m", "x"],
            ["git", "log"],
        ]

    def test_separator_inside_quotes_is_text(self):
        segments = split_sequence('git commit -m "fix && test"')
        assert len(segments) == 1
        assert segments[0][-1].text == "fix && test"

    def test_empty_segments_dropped(self):
        assert len(split_sequence("&& git log &&  && git add .")) == 2

    def test_blank(self):
        assert split_sequence("   ") == []


class TestParsedCommand:
    def test_parts(self):
        cmd = parse(tokenize("git checkout -b feature main"))
        assert cmd.program == "git"
        assert cmd.verb == "checkout"
        assert cmd.words == ("-b", "feature", "main")
        assert cmd.raw == "git checkout -b feature main"

    def test_no_verb(self):
        cmd = parse(tokenize("git"))
        assert cmd.verb is None
        assert cmd.args == ()

    def test_flags_and_positional(self):
        cmd = parse(tokenize("git push -u origin main"))
        assert cmd.has_flag("-u", "--set-upstream")
        assert not cmd.has_flag("--force")
        assert cmd.positional() == ["origin", "main"]

    def test_quoted_dash_is_positional(self):
        cmd = parse(tokenize('git commit -m "-v"'))
        assert not cmd.has_flag("-v")
        assert cmd.positional() == ["-v"]

    def test_message_after_m(self):
        cmd = parse(tokenize("git commit 'first' -m 'second'"))
        assert cmd.message() == "second"

    def test_message_first_quoted(self):
        assert parse(tokenize('git commit -am "Both"')).message() == "Both"

    def test_message_unquoted(self):
        assert parse(tokenize("git commit -m Fix")).message() is None

    def test_option_value(self):
        cmd = parse(tokenize("git commit -m"))
        assert cmd.option_value("-m") is None
