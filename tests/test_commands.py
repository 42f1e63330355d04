"""Tests for input classification."""
import pytest

from fastgpt.session.commands import COMMANDS, CommandName, InputKind, classify


@pytest.mark.parametrize("line", ["", "   ", "\t\n"])
def test_blank_lines_are_empty(line):
    assert classify(line).kind is InputKind.EMPTY


def test_plain_text_is_question():
    c = classify("  what is rust?  ")
    assert c.kind is InputKind.QUESTION
    assert c.text == "what is rust?"


def test_slash_inside_text_is_question():
    assert classify("is a/b a path?").kind is InputKind.QUESTION


@pytest.mark.parametrize("line,name", [
    ("/exit", CommandName.EXIT),
    ("/quit", CommandName.EXIT),
    ("  /clear ", CommandName.CLEAR),
    ("/history", CommandName.HISTORY),
    ("/help", CommandName.HELP),
    ("/list-files", CommandName.LIST_FILES),
    ("/clear-files", CommandName.CLEAR_FILES),
])
def test_known_commands(line, name):
    c = classify(line)
    assert c.kind is InputKind.COMMAND
    assert c.command.name is name


def test_command_argument_is_trimmed():
    c = classify("/add-file   docs/my notes.md  ")
    assert c.command.name is CommandName.ADD_FILE
    assert c.arg == "docs/my notes.md"


@pytest.mark.parametrize("line", ["/foo", "/EXIT", "/Help", "/clear now", "/"])
def test_unknown_commands(line):
    assert classify(line).kind is InputKind.UNKNOWN_COMMAND


def test_argument_command_without_argument_still_matches():
    c = classify("/remove-file")
    assert c.kind is InputKind.COMMAND
    assert c.arg == ""


def test_every_command_has_a_handler_name():
    from fastgpt.session.loop import Session
    for cmd in COMMANDS:
        assert hasattr(Session, f"_cmd_{cmd.name.value.replace('-', '_')}")
