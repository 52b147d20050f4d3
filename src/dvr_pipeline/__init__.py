"""
plex-dvr post-processing pipeline.

Stages (fixed order):
    acquire -> scan (comskip) -> cut (comcut) -> captions (ccextractor)
    -> remux (ffmpeg) -> transcode (HandBrakeCLI) -> subtitles (ffmpeg)

Only one recording is processed at a time (lock file) and nothing starts
during the configured quiet hours.
"""

__version__ = "1.0.0"
