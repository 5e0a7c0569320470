"""
Tests for the chapter processor
"""

import pytest

from mdbook_nadi import events as ev
from mdbook_nadi.chapter import ChapterProcessor, process_chapter
from mdbook_nadi.cmark import parse_events
from mdbook_nadi.config import NadiBookConfig
from mdbook_nadi.events import Tag


def shape(events):
    return [(e.kind, e.tag, e.text, e.attrs) for e in events]


@pytest.fixture
def processor(echo_evaluator):
    return ChapterProcessor(echo_evaluator)


class TestProcessEvents:
    """Tests for the event-level state machine."""

    def test_plain_chapter_unchanged(self, processor, temp_dir):
        """Test chapters without annotated blocks pass through."""
        events = parse_events("# Title\n\ntext\n\n```python\nx = 1\n```\n")
        assert shape(processor.process_events(events, temp_dir)) == shape(events)

    def test_result_follows_block(self, processor, temp_dir):
        """Test the result fragment is spliced after the block."""
        events = parse_events("```task run\nreturn 42\n```\n\nafter\n")
        out = processor.process_events(events, temp_dir)
        assert out[0].info == "task"
        assert out[1].text == "return 42\n"
        assert out[2].is_end_of(Tag.CODE_BLOCK)
        assert out[3].text == "Results:"
        assert out[5].text == "42"
        assert ev.plain_text(out[-3:]) == "after"

    def test_empty_block_untouched(self, processor, temp_dir):
        """Test an annotated block without text produces no result."""
        events = parse_events("```task run\n```\n")
        assert processor.process_events(events, temp_dir) == events
        assert processor.evaluator.executed == []

    def test_failure_recovered_inline(self, processor, temp_dir):
        """Test a failing block shows an error and later blocks still run."""
        source = "```task run\nfail broken\nreturn never\n```\n\n```task run\nreturn ok\n```\n"
        out = processor.process_events(parse_events(source), temp_dir)
        texts = [e.text for e in out]
        assert "*Error*:" in texts
        assert "never" not in texts
        assert "ok" in texts
        assert processor.evaluator.executed == ["fail broken", "return ok"]

    def test_block_error_recovered(self, processor, temp_dir):
        """Test parse errors of a block become an error fragment."""
        out = processor.process_events(parse_events("```stp run novalue\n{x}\n```\n"), temp_dir)
        assert "*Error*:" in [e.text for e in out]
        error_blocks = [e for e in out if e.is_start_of(Tag.CODE_BLOCK) and e.info == "error"]
        assert len(error_blocks) == 1

    def test_hide_source(self, echo_evaluator, temp_dir):
        """Test the block itself can be hidden."""
        processor = ChapterProcessor(echo_evaluator, NadiBookConfig(show_source=False))
        out = processor.process_events(parse_events("```task run\nreturn 1\n```\n"), temp_dir)
        assert out[0].text == "Results:"
        assert "return 1\n" not in [e.text for e in out]

    def test_hide_silent_lines(self, echo_evaluator, temp_dir):
        """Test `!` lines can be hidden from the displayed source."""
        processor = ChapterProcessor(echo_evaluator, NadiBookConfig(hide_silent_lines=True))
        out = processor.process_events(parse_events("```task run\n!echo setup\nreturn 1\n```\n"), temp_dir)
        assert out[1].text == "return 1\n"
        assert echo_evaluator.executed == ["echo setup", "return 1"]

    def test_results_are_copies(self, processor, temp_dir):
        """Test every output event is a distinct object."""
        out = processor.process_events(parse_events("```task run\nreturn 1\n```\n"), temp_dir)
        assert len({id(e) for e in out}) == len(out)


class TestProcess:
    """Tests for markdown in, markdown out."""

    def test_task_block(self, echo_evaluator, temp_dir):
        """Test a task block and its result in the rewritten chapter."""
        result = process_chapter("# Doc\n\n```task run\nreturn 42\n```\n", temp_dir, echo_evaluator)
        assert "```task\nreturn 42\n```" in result
        assert "Results:" in result
        assert "```output\n42\n```" in result

    def test_string_template(self, echo_evaluator, temp_dir):
        """Test a string template block."""
        result = process_chapter("```stp run x=1;y=2\n{x}-{y}\n```\n", temp_dir, echo_evaluator)
        assert "Results (with: x=1;y=2):" in result
        assert "1-2" in result

    def test_markdown_results(self, echo_evaluator, temp_dir):
        """Test markdown results are inlined."""
        result = process_chapter("```task run markdown\nreturn *inline*\n```\n", temp_dir, echo_evaluator)
        assert "*inline*" in result
        assert "```output" not in result

    def test_plain_round_trip(self, processor, temp_dir):
        """Test unannotated chapters re-parse to the same events."""
        source = "# T\n\nSome *text*.\n\n- a\n- b\n\n```sh\nls\n```\n"
        assert shape(parse_events(processor.process(source, temp_dir))) == shape(parse_events(source))
