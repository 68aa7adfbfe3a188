from __future__ import annotations

from conftest import make_words

from reelsmith.captions import build_srt, chunk_captions, format_srt_time, write_subtitle_file
from reelsmith.models import CaptionChunk, CaptionWord


def _words(spans: list[tuple[float, float]]) -> list[CaptionWord]:
    return [CaptionWord(text=f"w{i}", start=s, end=e, confidence=1.0) for i, (s, e) in enumerate(spans)]


class TestChunkCaptions:
    def test_empty_input(self):
        assert chunk_captions([]) == []

    def test_single_word(self):
        chunks = chunk_captions(_words([(0.4, 0.9)]))
        assert len(chunks) == 1
        assert chunks[0].words == ["w0"]
        assert (chunks[0].start, chunks[0].end) == (0.4, 0.9)

    def test_word_cap_closes_chunk_before_time_cap(self):
        words = _words([(0.0, 0.3), (0.5, 0.8), (1.0, 1.3), (1.5, 1.8), (2.0, 2.3)])
        chunks = chunk_captions(words)
        assert [len(c.words) for c in chunks] == [4, 1]
        assert chunks[0].words == ["w0", "w1", "w2", "w3"]
        assert (chunks[0].start, chunks[0].end) == (0.0, 1.8)
        assert chunks[1].words == ["w4"]
        assert (chunks[1].start, chunks[1].end) == (2.0, 2.3)

    def test_time_cap_closes_chunk(self):
        words = _words([(0.0, 0.5), (0.6, 1.2), (1.3, 2.1), (2.2, 2.5)])
        chunks = chunk_captions(words)
        # third word would end 2.1s after the chunk start
        assert [c.words for c in chunks] == [["w0", "w1"], ["w2", "w3"]]
        assert chunks[1].start == 1.3

    def test_span_of_exactly_two_seconds_stays_in_chunk(self):
        chunks = chunk_captions(_words([(0.0, 1.0), (1.0, 2.0)]))
        assert len(chunks) == 1

    def test_every_word_covered_once_in_order(self):
        words = make_words(37, 19.0)
        chunks = chunk_captions(words)
        flattened = [w for c in chunks for w in c.words]
        assert flattened == [w.text for w in words]
        assert all(1 <= len(c.words) <= 4 for c in chunks)

    def test_text_is_space_joined(self):
        chunk = chunk_captions([
            CaptionWord("Hello", 0.0, 0.4),
            CaptionWord("there", 0.5, 0.9),
        ])[0]
        assert chunk.text == "Hello there"


class TestFormatSrtTime:
    def test_hours_minutes_seconds_millis(self):
        assert format_srt_time(3661.234) == "01:01:01,234"

    def test_whole_seconds(self):
        assert format_srt_time(3665.0) == "01:01:05,000"

    def test_zero(self):
        assert format_srt_time(0) == "00:00:00,000"

    def test_millis_truncated_not_rounded(self):
        assert format_srt_time(1.9999) == "00:00:01,999"
        assert format_srt_time(59.0005) == "00:00:59,000"


class TestBuildSrt:
    def test_cue_layout(self):
        chunks = [
            CaptionChunk(words=["Hello", "world"], start=0.0, end=1.5),
            CaptionChunk(words=["again"], start=3661.234, end=3665.0),
        ]
        assert build_srt(chunks) == (
            "1\n00:00:00,000 --> 00:00:01,500\nHello world\n\n"
            "2\n01:01:01,234 --> 01:01:05,000\nagain\n\n"
        )

    def test_empty(self):
        assert build_srt([]) == ""

    def test_write_subtitle_file(self, tmp_path):
        path = write_subtitle_file(
            [CaptionChunk(words=["héllo"], start=0.0, end=1.0)],
            tmp_path / "sub" / "subtitles.srt",
        )
        assert path.read_text(encoding="utf-8") == "1\n00:00:00,000 --> 00:00:01,000\nhéllo\n\n"
