"""Media pipeline: resolve a reference, convert audio, upload for a handle."""

from metaprovider.media.audio import AudioConverter, FfmpegAudioConverter
from metaprovider.media.download import DownloadedFile, HttpMediaDownloader, MediaDownloader
from metaprovider.media.resolver import (
    LocalFile,
    LocalPath,
    MediaKind,
    MediaReference,
    MediaResolver,
    RemoteUrl,
    ResolvedFile,
    classify,
    parse_media_reference,
)
from metaprovider.media.upload import MediaHandle, MediaUploader

__all__ = [
    "AudioConverter",
    "DownloadedFile",
    "FfmpegAudioConverter",
    "HttpMediaDownloader",
    "LocalFile",
    "LocalPath",
    "MediaDownloader",
    "MediaHandle",
    "MediaKind",
    "MediaReference",
    "MediaResolver",
    "MediaUploader",
    "RemoteUrl",
    "ResolvedFile",
    "classify",
    "parse_media_reference",
]
