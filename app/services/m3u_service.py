"""M3U service — parses upstream playlists and renders the merged one."""
from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from app.models.channel import Channel

logger = logging.getLogger(__name__)

EXTINF_TAG = "#EXTINF:"
STREAM_PREFIXES = ("http", "rtmp", "rtsp")
UNKNOWN_CHANNEL_NAME = "Unknown"

_NAME_PATTERN = re.compile(r",([^,]+)$")
_GROUP_PATTERN = re.compile(r'group-title="([^"]+)"')
_LOGO_PATTERN = re.compile(r'tvg-logo="([^"]+)"')


def _parse_extinf(line: str, source_label: str) -> dict:
    name_match = _NAME_PATTERN.search(line)
    group_match = _GROUP_PATTERN.search(line)
    logo_match = _LOGO_PATTERN.search(line)
    return {
        "name": name_match.group(1).strip() if name_match else UNKNOWN_CHANNEL_NAME,
        "group": group_match.group(1) if group_match else None,
        "logo": logo_match.group(1) if logo_match else None,
        "source": source_label,
    }


def parse_m3u(content: str, source_label: str) -> list[Channel]:
    """Parse raw M3U text into channels, in the order their URL lines appear.

    An ``#EXTINF`` line opens a pending channel that the next stream URL
    completes; a second ``#EXTINF`` before any URL drops the first one.  A
    URL with nothing pending becomes ``Channel <n>`` where *n* is its
    1-based position in the output.  Never raises.
    """
    channels: list[Channel] = []
    lines = [line.strip() for line in content.lstrip("\ufeff").split("\n")]

    pending: Optional[dict] = None
    for line in lines:
        if not line:
            continue
        if line.startswith(EXTINF_TAG):
            pending = _parse_extinf(line, source_label)
        elif line.startswith("#"):
            continue
        elif line.startswith(STREAM_PREFIXES):
            if pending is not None:
                channels.append(Channel(url=line, **pending))
                pending = None
            else:
                channels.append(Channel(
                    name=f"Channel {len(channels) + 1}",
                    url=line,
                    source=source_label,
                ))

    logger.info(f"Parsed {len(channels)} channels from {source_label}")
    return channels


def render_m3u(channels: Iterable[Channel]) -> str:
    """Render channels as an M3U playlist.

    The source label is appended to each display name, so names containing
    a comma or attributes containing a quote do not survive a re-parse.
    """
    lines = ["#EXTM3U"]
    for channel in channels:
        extinf = "#EXTINF:-1"
        if channel.logo:
            extinf += f' tvg-logo="{channel.logo}"'
        if channel.group:
            extinf += f' group-title="{channel.group}"'
        extinf += f",{channel.name} [{channel.source}]"
        lines.append(extinf)
        lines.append(channel.url)
    return "\n".join(lines)
