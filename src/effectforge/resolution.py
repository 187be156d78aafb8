"""Resolution buckets and canvas dimension lookup."""

from __future__ import annotations

from typing import NamedTuple


class Dimensions(NamedTuple):
    """Canvas size in pixels."""

    width: int
    height: int

    @property
    def is_square(self) -> bool:
        return self.width == self.height


class ResolutionBucket(NamedTuple):
    width: int
    height: int
    name: str
    category: str

    @property
    def is_naturally_portrait(self) -> bool:
        return self.height > self.width


# Keyed by bucket id. Landscape buckets are stored landscape, mobile buckets
# portrait. 1081 is the square bucket (1080 stays free for 1080p naming).
RESOLUTIONS: dict[int, ResolutionBucket] = {
    160: ResolutionBucket(160, 120, "QQVGA", "SD"),
    240: ResolutionBucket(240, 180, "HQVGA", "SD"),
    320: ResolutionBucket(320, 240, "QVGA", "SD"),
    480: ResolutionBucket(480, 360, "nHD", "SD"),
    640: ResolutionBucket(640, 480, "VGA", "SD"),
    800: ResolutionBucket(800, 600, "SVGA", "SD"),
    854: ResolutionBucket(854, 480, "FWVGA", "WSD"),
    960: ResolutionBucket(960, 540, "qHD", "WSD"),
    1024: ResolutionBucket(1024, 768, "XGA", "XGA"),
    1152: ResolutionBucket(1152, 864, "XGA+", "XGA"),
    1280: ResolutionBucket(1280, 720, "HD", "HD"),
    1366: ResolutionBucket(1366, 768, "WXGA", "HD"),
    1440: ResolutionBucket(1440, 900, "WXGA+", "HD"),
    1600: ResolutionBucket(1600, 900, "HD+", "HD"),
    1680: ResolutionBucket(1680, 1050, "WSXGA+", "HD"),
    1920: ResolutionBucket(1920, 1080, "Full HD", "HD"),
    2048: ResolutionBucket(2048, 1080, "2K DCI", "Cinema"),
    2560: ResolutionBucket(2560, 1440, "QHD", "QHD"),
    2880: ResolutionBucket(2880, 1620, "QHD+", "QHD"),
    3200: ResolutionBucket(3200, 1800, "QHD+ Wide", "QHD"),
    3440: ResolutionBucket(3440, 1440, "UWQHD", "QHD"),
    3840: ResolutionBucket(3840, 2160, "4K UHD", "UHD"),
    4096: ResolutionBucket(4096, 2160, "DCI 4K", "UHD"),
    5120: ResolutionBucket(5120, 2880, "5K", "5K+"),
    6144: ResolutionBucket(6144, 3456, "6K", "5K+"),
    7680: ResolutionBucket(7680, 4320, "8K UHD", "8K+"),
    8192: ResolutionBucket(8192, 4320, "8K DCI", "8K+"),
    360: ResolutionBucket(360, 640, "Mobile SD", "Mobile"),
    375: ResolutionBucket(375, 667, "iPhone 6/7/8", "Mobile"),
    414: ResolutionBucket(414, 736, "iPhone Plus", "Mobile"),
    1081: ResolutionBucket(1080, 1080, "Instagram Square", "Social"),
}

RESOLUTION_ALIASES: dict[str, int] = {
    "qvga": 320,
    "vga": 640,
    "svga": 800,
    "xga": 1024,
    "hd720": 1280,
    "720p": 1280,
    "hd": 1920,
    "fullhd": 1920,
    "fhd": 1920,
    "1080p": 1920,
    "square": 1081,
    "wqhd": 2560,
    "qhd": 2560,
    "1440p": 2560,
    "4k": 3840,
    "uhd": 3840,
    "4kuhd": 3840,
    "5k": 5120,
    "8k": 7680,
}

DEFAULT_RESOLUTION = 1920


def parse_resolution(resolution: int | str) -> int:
    """Normalise a bucket id or alias to a bucket id.

    Raises ``ValueError`` for anything that does not name a known bucket.
    """
    if isinstance(resolution, bool):
        msg = f"invalid resolution: {resolution!r}"
        raise ValueError(msg)
    if isinstance(resolution, str):
        key = resolution.strip().lower()
        if key in RESOLUTION_ALIASES:
            return RESOLUTION_ALIASES[key]
        try:
            resolution = int(key)
        except ValueError:
            msg = f"unknown resolution: {resolution!r}"
            raise ValueError(msg) from None
    if resolution not in RESOLUTIONS:
        msg = f"unknown resolution: {resolution!r}"
        raise ValueError(msg)
    return resolution


def is_valid_resolution(resolution: int | str) -> bool:
    try:
        parse_resolution(resolution)
    except ValueError:
        return False
    return True


def get_dimensions(resolution: int | str, is_horizontal: bool = True) -> Dimensions:
    """Return the canvas dimensions for a bucket and orientation.

    Landscape buckets swap for vertical output, naturally-portrait buckets
    swap for horizontal output, square buckets never swap.
    """
    bucket = RESOLUTIONS[parse_resolution(resolution)]
    if bucket.is_naturally_portrait:
        if is_horizontal:
            return Dimensions(bucket.height, bucket.width)
        return Dimensions(bucket.width, bucket.height)
    if is_horizontal:
        return Dimensions(bucket.width, bucket.height)
    return Dimensions(bucket.height, bucket.width)


def display_name(resolution: int | str) -> str:
    """Human label, e.g. ``1920x1080 (Full HD)``."""
    if not is_valid_resolution(resolution):
        return f"{resolution}x? (Unknown)"
    bucket = RESOLUTIONS[parse_resolution(resolution)]
    return f"{bucket.width}x{bucket.height} ({bucket.name})"


def list_resolutions(category: str | None = None) -> list[tuple[int, ResolutionBucket]]:
    """All buckets sorted by id, optionally filtered by category."""
    return [
        (key, bucket)
        for key, bucket in sorted(RESOLUTIONS.items())
        if category is None or bucket.category == category
    ]
