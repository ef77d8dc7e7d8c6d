"""Tests for silence interleaving and chapter/book merging."""

from pathlib import Path

import pytest

from narratore.audio.timeline import (
    TimelineAssembler,
    chapter_audio_path,
    interleave_silence,
    write_concat_list,
)
from narratore.errors import CommandError
from narratore.events import ChapterMerged, ChapterMergeStarted, EventEmitter
from narratore.models import AudioAsset, AudioFormat, Chapter, ChapterNarration


def _asset(path: Path, duration: float = 1.0) -> AudioAsset:
    path.write_text(f"duration={duration}")
    return AudioAsset(path=path, duration=duration)


@pytest.fixture
def silences(tmp_path):
    return _asset(tmp_path / "short.wav", 0.8), _asset(tmp_path / "long.wav", 1.5)


class TestInterleaveSilence:
    def test_short_between_lines_long_at_end(self, tmp_path, silences):
        short, long = silences
        lines = [AudioAsset(tmp_path / f"l{i}.wav", 1.0) for i in range(3)]

        entries = interleave_silence(lines, short, long)

        assert entries == [lines[0], short, lines[1], short, lines[2], long]

    def test_single_line_chapter_gets_only_long_silence(self, tmp_path, silences):
        short, long = silences
        only = AudioAsset(tmp_path / "l0.wav", 1.0)

        assert interleave_silence([only], short, long) == [only, long]

    def test_no_trailing_silence(self, tmp_path, silences):
        short, long = silences
        lines = [AudioAsset(tmp_path / f"l{i}.wav", 1.0) for i in range(2)]

        assert interleave_silence(lines, short, long, trailing=False) == [lines[0], short, lines[1]]

    def test_title_pause(self, tmp_path, silences):
        short, long = silences
        lines = [AudioAsset(tmp_path / f"l{i}.wav", 1.0) for i in range(3)]

        entries = interleave_silence(lines, short, long, title_pause=True)

        assert entries == [lines[0], long, lines[1], short, lines[2], long]


class TestWriteConcatList:
    def test_paths_are_relative_to_list(self, tmp_path):
        sub = tmp_path / "audio"
        sub.mkdir()
        entries = [AudioAsset(sub / "a.wav", 1.0), AudioAsset(tmp_path / "b.wav", 1.0)]
        list_path = tmp_path / "list.txt"

        write_concat_list(entries, list_path)

        assert list_path.read_text() == "file 'audio/a.wav'\nfile 'b.wav'\n"

    def test_single_quotes_are_escaped(self, tmp_path):
        list_path = tmp_path / "list.txt"
        write_concat_list([AudioAsset(tmp_path / "l'alba.wav", 1.0)], list_path)

        assert list_path.read_text() == "file 'l'\\''alba.wav'\n"


class TestTimelineAssembler:
    def test_merge_chapter_measures_merged_file(self, tmp_path, fake_ffmpeg, silences, concat_entries):
        short, long = silences
        lines = [_asset(tmp_path / "l0.wav", 1.25), _asset(tmp_path / "l1.wav", 2.0)]
        events = EventEmitter()
        seen = []
        events.subscribe(seen.append)
        chapter = Chapter(number=3, title="Terzo", lines=["a", "b"])

        assembler = TimelineAssembler(tmp_path, AudioFormat(22050, 1), events)
        narration = assembler.merge_chapter(chapter, lines, short, long)

        assert narration.audio_file == chapter_audio_path(tmp_path, 3)
        assert narration.duration == pytest.approx(1.25 + 0.8 + 2.0 + 1.5)
        assert concat_entries(tmp_path / "chapter_0003_concat.txt") == [
            "l0.wav", "short.wav", "l1.wav", "long.wav",
        ]
        assert seen[0] == ChapterMergeStarted(chapter_number=3, total_files=4)
        assert isinstance(seen[1], ChapterMerged)
        assert seen[1].resumed is False

    def test_merge_chapter_reuses_existing_file(self, tmp_path, fake_ffmpeg, silences):
        short, long = silences
        chapter = Chapter(number=1, title="Uno", lines=["a"])
        lines = [_asset(tmp_path / "l0.wav")]
        assembler = TimelineAssembler(tmp_path, AudioFormat(22050, 1), EventEmitter())
        assembler.merge_chapter(chapter, lines, short, long)
        chapter_audio_path(tmp_path, 1).write_text("duration=9.0")

        narration = assembler.merge_chapter(chapter, lines, short, long, reuse_existing=True)

        assert narration.duration == 9.0
        assert len(fake_ffmpeg.commands("concat")) == 1

    def test_existing_file_without_concat_list_is_merged_again(self, tmp_path, fake_ffmpeg, silences):
        short, long = silences
        chapter_audio_path(tmp_path, 1).write_text("duration=9.0")
        assembler = TimelineAssembler(tmp_path, AudioFormat(22050, 1), EventEmitter())

        narration = assembler.merge_chapter(
            Chapter(1, "Uno", ["a"]), [_asset(tmp_path / "l0.wav")], short, long, reuse_existing=True
        )

        assert narration.duration == pytest.approx(2.5)

    @pytest.mark.parametrize("layout", [{"trailing": False}, {"title_pause": True}])
    def test_changed_layout_is_merged_again(self, tmp_path, fake_ffmpeg, silences, layout):
        short, long = silences
        chapter = Chapter(number=1, title="Uno", lines=["a", "b", "c"])
        lines = [_asset(tmp_path / f"l{i}.wav") for i in range(3)]
        assembler = TimelineAssembler(tmp_path, AudioFormat(22050, 1), EventEmitter())
        first = assembler.merge_chapter(chapter, lines, short, long)

        second = assembler.merge_chapter(chapter, lines, short, long, reuse_existing=True, **layout)

        assert len(fake_ffmpeg.commands("concat")) == 2
        assert second.duration != pytest.approx(first.duration)

    def test_failed_remerge_drops_stale_chapter(self, tmp_path, fake_ffmpeg, silences):
        short, long = silences
        chapter = Chapter(number=1, title="Uno", lines=["a", "b"])
        lines = [_asset(tmp_path / f"l{i}.wav") for i in range(2)]
        assembler = TimelineAssembler(tmp_path, AudioFormat(22050, 1), EventEmitter())
        assembler.merge_chapter(chapter, lines, short, long)

        fake_ffmpeg.fail_on = "concat"
        with pytest.raises(CommandError):
            assembler.merge_chapter(chapter, lines, short, long, trailing=False)

        assert not chapter_audio_path(tmp_path, 1).exists()

    def test_merge_chapter_rejects_empty_assets(self, tmp_path, silences):
        short, long = silences
        assembler = TimelineAssembler(tmp_path, AudioFormat(22050, 1), EventEmitter())

        with pytest.raises(ValueError):
            assembler.merge_chapter(Chapter(1, "Uno", []), [], short, long)

    def test_failed_merge_leaves_no_output(self, tmp_path, fake_ffmpeg, silences):
        short, long = silences
        fake_ffmpeg.fail_on = "concat"
        assembler = TimelineAssembler(tmp_path, AudioFormat(22050, 1), EventEmitter())

        with pytest.raises(CommandError):
            assembler.merge_chapter(
                Chapter(1, "Uno", ["a"]), [_asset(tmp_path / "l0.wav")], short, long
            )

        assert not chapter_audio_path(tmp_path, 1).exists()
        assert not (tmp_path / "chapter_0001.part.wav").exists()

    def test_merge_book_uses_chapter_files_in_order(self, tmp_path, fake_ffmpeg, concat_entries):
        second = ChapterNarration(
            Chapter(2, "Due", ["b"]), chapter_audio_path(tmp_path, 2), 3.0
        )
        first = ChapterNarration(
            Chapter(1, "Uno", ["a"]), chapter_audio_path(tmp_path, 1), 2.0
        )
        first.audio_file.write_text("duration=2.0")
        second.audio_file.write_text("duration=3.0")

        assembler = TimelineAssembler(tmp_path, AudioFormat(22050, 1), EventEmitter())
        book = assembler.merge_book([second, first], tmp_path / "audiobook.wav")

        assert concat_entries(tmp_path / "book_concat.txt") == ["chapter_0001.wav", "chapter_0002.wav"]
        assert book.duration == pytest.approx(5.0)

    def test_concat_uses_run_audio_format(self, tmp_path, fake_ffmpeg, silences):
        short, long = silences
        assembler = TimelineAssembler(tmp_path, AudioFormat(44100, 2), EventEmitter(), timeout=30)
        assembler.merge_chapter(
            Chapter(1, "Uno", ["a"]), [_asset(tmp_path / "l0.wav")], short, long
        )

        cmd = fake_ffmpeg.commands("concat")[0]
        assert cmd[cmd.index("-ar") + 1] == "44100"
        assert cmd[cmd.index("-ac") + 1] == "2"
        assert cmd[cmd.index("-c:a") + 1] == "pcm_s16le"
