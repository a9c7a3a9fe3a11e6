"""Tests for relsmith.output.console module."""

from __future__ import annotations

from relsmith.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


class TestMockConsole:
    """Test MockConsole for testing purposes."""

    def test_print_captures_message(self) -> None:
        console = MockConsole()
        console.print("hello")
        assert console.outputs[0].message == "hello"
        assert console.outputs[0].style == Style.DEFAULT

    def test_prefixes(self) -> None:
        console = MockConsole()
        console.success("done")
        console.error("bad")
        console.warning("careful")
        console.info("fyi")
        console.debug("details")
        assert console.messages == [
            "OK done",
            "error: bad",
            "warning: careful",
            "info: fyi",
            "debug: details",
        ]

    def test_helpers(self) -> None:
        console = MockConsole()
        console.warning("one")
        console.warning("two")
        console.header("Section")
        assert console.has_warning()
        assert console.count(Style.WARNING) == 2
        assert [o.message for o in console.find("tw")] == ["warning: two"]
        assert console.messages[-1] == "Section"


class TestRichConsole:
    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = RichConsole()
        assert console is not None

    def test_markup_in_message_is_escaped(self, capsys) -> None:  # type: ignore[no-untyped-def]
        console = RichConsole()
        console.error("bad [red]value[/red]")
        out = capsys.readouterr().out
        assert "[red]value[/red]" in out
