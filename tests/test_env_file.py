"""Tests for reading and writing the agent env file."""

import os
from textwrap import dedent

import pytest

from beszelapp.core.env_file import EnvFile, parse_env
from beszelapp.models.env import ParsedEnv


@pytest.fixture
def env_path(tmp_path):
    return tmp_path / "config" / "beszel" / "beszel-agent.env"


class TestParse:
    def test_classifies_lines(self):
        parsed = parse_env(dedent(
            """\
            # agent settings
            KEY="ssh-ed25519 AAAA"

            LISTEN=45876
            just some text
            =orphan
              EXTRA = 'quoted value'
            """
        ))
        assert parsed.values == {
            "KEY": "ssh-ed25519 AAAA",
            "LISTEN": "45876",
            "EXTRA": "quoted value",
        }
        assert parsed.extra_lines == ["# agent settings", "just some text", "=orphan"]

    def test_extra_lines_kept_verbatim(self):
        parsed = parse_env("   # indented comment  \nno equals here\t\n")
        assert parsed.extra_lines == ["   # indented comment  ", "no equals here\t"]

    def test_only_one_layer_of_quotes_removed(self):
        parsed = parse_env("A='\"x\"'\nB=\"unbalanced\nC=\"\n")
        assert parsed.values["A"] == '"x"'
        assert parsed.values["B"] == '"unbalanced'
        assert parsed.values["C"] == '"'

    def test_value_may_contain_equals(self):
        parsed = parse_env("HUB_URL=http://hub?a=b\n")
        assert parsed.values["HUB_URL"] == "http://hub?a=b"

    def test_later_duplicate_wins(self):
        parsed = parse_env("X=1\nX=2\n")
        assert parsed.values == {"X": "2"}

    def test_handles_crlf(self):
        parsed = parse_env("KEY=abc\r\nTOKEN=def\r\n")
        assert parsed.values == {"KEY": "abc", "TOKEN": "def"}


class TestRead:
    def test_missing_file_is_empty(self, env_path):
        parsed = EnvFile(env_path).read()
        assert parsed.values == {}
        assert parsed.extra_lines == []

    def test_non_utf8_file_is_empty(self, env_path):
        env_path.parent.mkdir(parents=True)
        env_path.write_bytes(b"KEY=\xff\xfe\n")
        assert EnvFile(env_path).read().is_empty()


class TestRender:
    def test_well_known_keys_first_and_quoted(self):
        text = EnvFile.render(key="k", token="t", hub_url="http://hub", listen="1234")
        assert text == 'KEY="k"\nLISTEN=1234\nTOKEN="t"\nHUB_URL="http://hub"\n'

    def test_listen_defaults(self):
        text = EnvFile.render(key="", token="", hub_url="", listen="")
        assert text == "LISTEN=45876\n"

    def test_whitespace_listen_defaults(self):
        assert "LISTEN=45876\n" in EnvFile.render(key="k", token="", hub_url="", listen="   ")

    def test_values_are_trimmed(self):
        text = EnvFile.render(key="  k  ", token="", hub_url="", listen=" 9000 ")
        assert text == 'KEY="k"\nLISTEN=9000\n'

    def test_preserved_sections(self):
        preserve = ParsedEnv(
            values={"ZED": "1", "KEY": "old", "ALPHA": "two words"},
            extra_lines=["# first", "garbage"],
        )
        text = EnvFile.render(key="new", token="", hub_url="", listen="", preserve=preserve)
        assert text == dedent(
            """\
            KEY="new"
            LISTEN=45876

            # ---- preserved lines ----
            # first
            garbage

            # ---- preserved env vars ----
            ALPHA=two words
            ZED=1
            """
        )

    def test_single_trailing_newline(self):
        preserve = ParsedEnv(values={"A": "1"}, extra_lines=["# x"])
        text = EnvFile.render(key="k", token="t", hub_url="h", listen="1", preserve=preserve)
        assert text.endswith("\n")
        assert not text.endswith("\n\n")


class TestWrite:
    def test_creates_parent_directories(self, env_path):
        EnvFile(env_path).write(key="k", token="", hub_url="", listen="")
        assert env_path.read_text() == 'KEY="k"\nLISTEN=45876\n'

    def test_file_permissions(self, env_path):
        EnvFile(env_path).write(key="k", token="t", hub_url="", listen="")
        assert env_path.stat().st_mode & 0o777 == 0o600

    def test_no_temp_files_left(self, env_path):
        env_file = EnvFile(env_path)
        env_file.write(key="a", token="", hub_url="", listen="")
        env_file.write(key="b", token="", hub_url="", listen="")
        assert os.listdir(env_path.parent) == [env_path.name]

    def test_unwritable_location_raises(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        with pytest.raises(OSError):
            EnvFile(blocker / "beszel-agent.env").write(key="k", token="", hub_url="", listen="")

    def test_unencodable_value_leaves_no_temp_file(self, env_path):
        env_file = EnvFile(env_path)
        env_file.write(key="k", token="", hub_url="", listen="")

        with pytest.raises(UnicodeEncodeError):
            env_file.write(key="k", token="\udcff", hub_url="", listen="")

        assert os.listdir(env_path.parent) == [env_path.name]
        assert env_path.read_text() == 'KEY="k"\nLISTEN=45876\n'

    def test_round_trip_preserves_everything(self, env_path):
        env_path.parent.mkdir(parents=True)
        env_path.write_text(dedent(
            """\
            # managed by hand
            ZZZ=last
            KEY="ssh-ed25519 AAAAC3"
            TOKEN='tok-123'
            bogus line
            HUB_URL=https://hub.example.com
            LISTEN=0.0.0.0:45876
            AAA = first
            =no key
            """
        ))
        env_file = EnvFile(env_path)
        before = env_file.read()

        env_file.write(
            key=before.get("KEY"),
            token=before.get("TOKEN"),
            hub_url=before.get("HUB_URL"),
            listen=before.get("LISTEN"),
            preserve=before,
        )
        after = env_file.read()

        assert after.values == before.values
        assert after.extra_lines == before.extra_lines == ["# managed by hand", "bogus line", "=no key"]

    def test_repeated_round_trips_are_stable(self, env_path):
        env_file = EnvFile(env_path)
        env_file.write(key="k", token="t", hub_url="", listen="",
                       preserve=ParsedEnv(values={"X": "1"}, extra_lines=["# note"]))
        first = env_path.read_text()

        for _ in range(3):
            parsed = env_file.read()
            env_file.write(key=parsed.get("KEY"), token=parsed.get("TOKEN"), hub_url=parsed.get("HUB_URL"),
                           listen=parsed.get("LISTEN"), preserve=parsed)

        assert env_path.read_text() == first
        assert first.count("# ---- preserved lines ----") == 1

    @pytest.mark.parametrize("value", ['say "hi"', 'C:\\agent\\key', 'ends with \\', '\\"'])
    def test_quoted_values_read_back_exactly(self, env_path, value):
        env_file = EnvFile(env_path)
        env_file.write(key=value, token=value, hub_url=value, listen="")
        parsed = env_file.read()
        assert parsed.values["KEY"] == value
        assert parsed.values["TOKEN"] == value
        assert parsed.values["HUB_URL"] == value

    def test_empty_token_omitted(self, env_path):
        env_file = EnvFile(env_path)
        env_file.write(key="k", token="  ", hub_url="", listen="")
        assert "TOKEN=" not in env_path.read_text()
        assert "TOKEN" not in env_file.read().values

    def test_listen_written_unquoted(self, env_path):
        env_file = EnvFile(env_path)
        env_file.write(key="", token="", hub_url="", listen="/tmp/beszel.sock")
        assert env_path.read_text() == "LISTEN=/tmp/beszel.sock\n"

    def test_removed_unknown_key_is_not_written(self, env_path):
        env_file = EnvFile(env_path)
        env_file.write(key="k", token="", hub_url="", listen="",
                       preserve=ParsedEnv(values={"OLD": "1", "KEEP": "2"}))
        parsed = env_file.read()
        del parsed.values["OLD"]
        env_file.write(key="k", token="", hub_url="", listen="", preserve=parsed)
        assert env_file.read().values == {"KEY": "k", "LISTEN": "45876", "KEEP": "2"}
