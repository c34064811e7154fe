#!/usr/bin/env python3
"""
Filename codec for Lighthouse report artifacts.

Artifacts are written by the collector as
``<encodedToken>-<preset>-<timestamp>.report.json`` / ``.report.html``.
The encoded token is a filesystem-safe rendition of the measured URL.
Decoding recovers a ``ReportKey`` from such a filename.
"""

import re
from datetime import datetime
from typing import List

import pytz

from core.models.entry import ReportKey

PRESETS = ("mobile", "desktop")

_SCHEMES = ("https://", "http://")
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")

# Longest first so ".report.html" wins over ".html"
KNOWN_SUFFIXES = (".report.html", ".html", ".report.json", ".json")


def encode(url: str) -> str:
    """
    Encode a URL into a filesystem-safe token.

    The scheme is stripped and every non-alphanumeric character becomes
    ``_`` one-for-one, so distinct URLs may collide.
    """
    for scheme in _SCHEMES:
        if url.startswith(scheme):
            url = url[len(scheme):]
            break
    return _UNSAFE_CHARS.sub("_", url)


def strip_known_suffix(name: str) -> str:
    """Remove a single known artifact suffix, case-insensitively."""
    lowered = name.lower()
    for suffix in KNOWN_SUFFIXES:
        if lowered.endswith(suffix):
            return name[:-len(suffix)]
    return name


def decode(filename: str) -> ReportKey:
    """
    Decode an artifact filename into page, preset and timestamp.

    Markers are tried in fixed order (``-mobile-`` then ``-desktop-``) and
    the leftmost occurrence of the first marker found splits the name.
    Page labels that themselves contain a marker decode ambiguously.
    """
    for preset in PRESETS:
        marker = f"-{preset}-"
        idx = filename.find(marker)
        if idx != -1:
            page = filename[:idx].replace("_", " ")
            timestamp = strip_known_suffix(filename[idx + len(marker):])
            return ReportKey(page=page, preset=preset, timestamp=timestamp)

    return ReportKey(page=filename, preset="", timestamp="")


def json_counterparts(html_name: str) -> List[str]:
    """Candidate JSON filenames for an HTML artifact, in lookup order."""
    candidates = []
    if html_name.lower().endswith(".report.html"):
        candidates.append(html_name[:-len(".report.html")] + ".report.json")
    if html_name.lower().endswith(".html"):
        candidates.append(html_name[:-len(".html")] + ".json")

    unique = []
    for candidate in candidates:
        if candidate not in unique:
            unique.append(candidate)
    return unique


def html_counterpart(json_name: str) -> str:
    """HTML filename paired with a JSON artifact."""
    if json_name.lower().endswith(".json"):
        return json_name[:-len(".json")] + ".html"
    return json_name + ".html"


def artifact_basename(url: str, preset: str, when: datetime) -> str:
    """
    Build the artifact base name the collector writes for one run.

    The timestamp is the UTC ISO instant with ``:`` and ``.`` replaced by ``-``.
    Naive datetimes are taken as UTC.
    """
    if when.tzinfo is None:
        when = pytz.utc.localize(when)
    else:
        when = when.astimezone(pytz.utc)
    stamp = when.isoformat(timespec="milliseconds")
    if stamp.endswith("+00:00"):
        stamp = stamp[:-len("+00:00")] + "Z"
    stamp = stamp.replace(":", "-").replace(".", "-")
    return f"{encode(url)}-{preset}-{stamp}"
