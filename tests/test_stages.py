from __future__ import annotations

from dvr_pipeline.errors import ToolExitFailure, exit_status_for
from dvr_pipeline.stages import captions, commercials, remux, transcode
from dvr_pipeline.utils.process import ProcessResult
from tests._helpers.runner import FakeRunner


def _result(tool: str, code: int | None) -> ProcessResult:
    return ProcessResult(tool=tool, argv=(tool,), ok=code == 0, code=code)


def test_comskip_argv(make_ctx, settings) -> None:
    ctx = make_ctx(comskip_location="/opt/comskip")
    job = ctx.job
    assert commercials.comskip_argv(ctx) == [
        "/opt/comskip",
        "--pid=0100",
        "--ts",
        "--hwassist",
        f"--ini={settings.comskip_ini}",
        f"--output={job.work_dir}",
        f"--output-filename={job.name}",
        str(job.ts),
    ]


def test_comcut_argv(make_ctx, settings) -> None:
    ctx = make_ctx()
    assert commercials.comcut_argv(ctx) == [
        "comcut",
        "--keep-meta",
        f"--comskip-ini={settings.comskip_ini}",
        f"--work-dir={ctx.job.work_dir}",
        str(ctx.job.ts),
    ]


def test_cut_without_boundaries_writes_blank_chapters(make_ctx) -> None:
    runner = FakeRunner()
    ctx = make_ctx(runner=runner)
    assert commercials.cut(ctx) is None
    assert runner.calls == []
    assert ctx.job.ffmeta.read_text(encoding="utf-8") == ";FFMETADATA1\n"


def test_cut_with_boundaries_runs_comcut(make_ctx) -> None:
    runner = FakeRunner()
    ctx = make_ctx(runner=runner)
    ctx.job.edl.write_text("0.0\t30.0\t0\n", encoding="utf-8")
    res = commercials.cut(ctx)
    assert res is not None and res.ok
    assert runner.tools == ["comcut"]
    assert not ctx.job.ffmeta.exists()


def test_scan_bypass_skips_comskip(make_ctx) -> None:
    runner = FakeRunner()
    ctx = make_ctx(runner=runner, bypass_comskip=True)
    assert commercials.scan(ctx) is None
    assert runner.calls == []


def test_ccextractor_argv(make_ctx) -> None:
    ctx = make_ctx()
    assert captions.ccextractor_argv(ctx) == [
        "ccextractor",
        "-in=ts",
        "-out=srt",
        "--nofontcolor",
        "--notypesetting",
        "-noru",
        "--splitbysentence",
        str(ctx.job.ts),
        "-o",
        str(ctx.job.srt),
    ]


def test_ccextractor_exit_causes() -> None:
    assert captions.classify(_result("ccextractor", 0)) is None

    err = captions.classify(_result("ccextractor", 3))
    assert isinstance(err, ToolExitFailure)
    assert err.message == "CCExtractor exited with too many input files"
    assert err.ref == captions.CCEXTRACTOR_REF
    assert err.exit_code == 3

    assert captions.classify(_result("ccextractor", 7)).message.endswith("bad parameters")
    assert captions.classify(_result("ccextractor", 42)).message == "CCExtractor exited with code 42"


def test_chapters_argv(make_ctx) -> None:
    ctx = make_ctx(ffmpeg_location="/usr/local/bin/ffmpeg")
    job = ctx.job
    assert remux.chapters_argv(ctx) == [
        "/usr/local/bin/ffmpeg",
        "-i",
        str(job.ts),
        "-i",
        str(job.ffmeta),
        "-map_metadata",
        "1",
        "-c",
        "copy",
        str(job.mp4),
    ]


def test_subtitles_argv_with_and_without_captions(make_ctx) -> None:
    ctx = make_ctx()
    job = ctx.job
    assert job.output == job.source.with_suffix(".mkv")

    assert remux.subtitles_argv(ctx) == [
        "ffmpeg", "-i", str(job.mkv), "-c", "copy", "-map_metadata", "0", str(job.output)
    ]

    job.srt.write_text("", encoding="utf-8")
    assert str(job.srt) not in remux.subtitles_argv(ctx)

    job.srt.write_text("1\n00:00:01,000 --> 00:00:02,000\nhi\n", encoding="utf-8")
    assert remux.subtitles_argv(ctx) == [
        "ffmpeg",
        "-i",
        str(job.mkv),
        "-i",
        str(job.srt),
        "-c",
        "copy",
        "-map_metadata",
        "0",
        "-map_metadata",
        "1",
        str(job.output),
    ]


def test_handbrake_argv_presets(make_ctx) -> None:
    ctx = make_ctx()
    job = ctx.job
    assert transcode.handbrake_argv(ctx) == [
        "HandBrakeCLI", "--preset-import-gui", "-i", str(job.mp4), "-o", str(job.mkv)
    ]

    ctx = make_ctx(
        handbrake_presets_import="/presets.json",
        handbrake_preset_name="TV",
        encoder="vt_h264",
        encoder_preset="quality",
    )
    job = ctx.job
    assert transcode.handbrake_argv(ctx) == [
        "HandBrakeCLI",
        "--preset-import-file",
        "/presets.json",
        "--preset",
        "TV",
        "--encoder",
        "vt_h264",
        "--encoder-preset",
        "quality",
        "-i",
        str(job.mp4),
        "-o",
        str(job.mkv),
    ]


def test_handbrake_failure_has_suggestions() -> None:
    err = transcode.classify(_result("HandBrakeCLI", 2))
    assert err is not None
    assert err.message == "HandBrakeCLI failed with code 2"
    assert err.suggestions


def test_exit_status_mapping() -> None:
    assert exit_status_for(None) == 1
    assert exit_status_for(3) == 3
    assert exit_status_for(-9) == 137
    assert exit_status_for(300) == 1
