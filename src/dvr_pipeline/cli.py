from __future__ import annotations

from pathlib import Path

import click

from dvr_pipeline import __version__
from dvr_pipeline import config as cfg
from dvr_pipeline.errors import PipelineError
from dvr_pipeline.jobs.coordinator import process_file
from dvr_pipeline.utils.log import configure_logging, level_for

HELP = """
Post-process a Plex DVR recording (transport stream) FILE:

\b
1. Copy the recording into a fresh directory under the system tmpdir
2. Find commercial breaks with comskip; if there are any,
   a. cut them out with comcut
   b. add chapter markers where the breaks were
3. Extract closed captions as SRT subtitles
4. Remux to mp4 to add chapter markers
5. Transcode to mkv with HandBrakeCLI, then add the subtitles back
6. Clean up: delete the original recording and the temporary files,
   leaving FILE.mkv next to the original

Processing waits for quiet hours to end and for any other running job
to finish, so only one recording is processed at a time.

\b
Prerequisites:
  comskip      https://github.com/erikkaashoek/Comskip
  comcut       https://github.com/BrettSheleski/comchap
  ccextractor  https://github.com/CCExtractor/ccextractor
  ffmpeg       https://ffmpeg.org/
  HandBrakeCLI https://handbrake.fr/downloads.php
"""

EXAMPLES = """
\b
Examples:
  plex-dvr /path/to/video.ts
  plex-dvr -q 22-06 -e vt_h264 /path/to/video.ts
"""


@click.command(
    name="plex-dvr",
    help=HELP,
    epilog=EXAMPLES,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(__version__, "-V", "--version", prog_name="plex-dvr")
@click.argument("file", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "-e",
    "--encoder",
    default=None,
    help="Video encoder passed to HandBrake. Run `HandBrakeCLI --help` to list encoders.",
)
@click.option(
    "--encoder-preset",
    default=None,
    help="Encoder preset passed to HandBrake. Run `HandBrakeCLI --encoder-preset-list <encoder>`.",
)
@click.option(
    "--ignore-quiet-time",
    is_flag=True,
    default=None,
    help="Process immediately without checking quiet hours.",
)
@click.option(
    "--keep-original/--no-keep-original",
    default=None,
    help="Keep the original recording. Default is to delete it.",
)
@click.option(
    "--keep-temp/--no-keep-temp",
    default=None,
    help="Keep the temporary working directory. Default is to delete it.",
)
@click.option(
    "-q",
    "--quiet-time",
    default=None,
    metavar="NN-NN",
    help="Quiet hours on the 24-hour clock, e.g. 22-06 (0 is midnight, 23 is 11pm).",
)
@click.option("--sample-config", is_flag=True, default=False, help="Print config values and exit.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose logging to the console.")
@click.option(
    "-d",
    "--debug",
    is_flag=True,
    default=False,
    help="Include stdout and stderr of every tool in the logs (implies --verbose).",
)
@click.option("--comskip-location", default=None, help="comskip binary location [default: comskip]")
@click.option("--comcut-location", default=None, help="comcut binary location [default: comcut]")
@click.option(
    "--ccextractor-location", default=None, help="ccextractor binary location [default: ccextractor]"
)
@click.option("--ffmpeg-location", default=None, help="ffmpeg binary location [default: ffmpeg]")
@click.option(
    "--handbrake-location", default=None, help="HandBrakeCLI binary location [default: HandBrakeCLI]"
)
@click.option(
    "-H",
    "--handbrake-presets-import",
    default=None,
    help="HandBrake presets file to load. Defaults to the presets of the HandBrake GUI, if any.",
)
@click.option(
    "-P",
    "--handbrake-preset-name",
    default=None,
    help="Name of the preset to select from the GUI or the presets file.",
)
@click.option("--bypass-comskip", is_flag=True, default=None, hidden=True)
def cli(
    file: Path | None,
    sample_config: bool,
    verbose: bool,
    debug: bool,
    **flags: object,
) -> None:
    settings = cfg.get_settings()

    if flags.get("quiet_time") and flags.get("ignore_quiet_time"):
        raise click.UsageError("--quiet-time and --ignore-quiet-time cannot be used together.")

    try:
        options = cfg.load_options(flags, settings=settings)
    except cfg.ConfigError as ex:
        raise click.ClickException(str(ex)) from ex

    if sample_config:
        click.echo(
            f"plex-dvr will look in {settings.config_dir} for a config file "
            f"({cfg.CONFIG_FILE_NAME}) as well as a {cfg.COMSKIP_INI_NAME}."
        )
        click.echo(cfg.sample_config(options))
        return

    if file is None:
        raise click.UsageError("Missing argument 'FILE'.")

    log = configure_logging(
        settings, level_for(verbose=verbose, debug=debug, default=settings.log_level)
    )
    log.info("startup", version=__version__)

    if not file.exists():
        log.error("file_not_found", file=str(file))
        raise click.ClickException(f"File not found: {file}")

    try:
        code = process_file(
            file,
            options,
            settings=settings,
            log=log,
            verbose=verbose,
            debug=debug,
        )
    except PipelineError as ex:
        log.error("job_refused", error=ex.message, suggestions=list(ex.suggestions))
        raise click.ClickException(ex.message) from ex
    raise SystemExit(code)


if __name__ == "__main__":  # pragma: no cover
    cli()
