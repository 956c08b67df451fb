"""Scene model and storyboard parsing."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field

from .errors import InvalidRequestError


@dataclass
class Scene:
    index: int
    prompt: str    # visual description sent to the video model
    subtitle: str  # spoken line, narrated and lip-synced

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GeneratedVideo:
    url: str
    description: str
    subtitles: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PipelineResult:
    synced_videos: list[str] = field(default_factory=list)
    generated_videos: list[GeneratedVideo] = field(default_factory=list)
    merged_video_url: str | None = None

    @property
    def final_url(self) -> str | None:
        """The merged video, or the only clip when there was one scene."""
        if self.merged_video_url:
            return self.merged_video_url
        return self.synced_videos[-1] if self.synced_videos else None


def build_scenes(pairs: list[tuple[str, str]]) -> list[Scene]:
    """Build scenes from (prompt, subtitle) pairs.

    Every scene needs both a prompt and a subtitle before it can be submitted.
    """
    if not pairs:
        raise InvalidRequestError("At least one scene is required")
    scenes: list[Scene] = []
    for i, (prompt, subtitle) in enumerate(pairs):
        prompt, subtitle = (prompt or "").strip(), (subtitle or "").strip()
        if not prompt or not subtitle:
            raise InvalidRequestError(f"Scene {i + 1} needs both a prompt and a subtitle")
        scenes.append(Scene(index=i, prompt=prompt, subtitle=subtitle))
    return scenes


def parse_scene_lines(text: str) -> list[Scene]:
    """Parse a storyboard into Scene objects.

    Format: one scene per line, pipe-separated::

        visual prompt | spoken subtitle

    Lines starting with ``#`` and blank lines are ignored. Raises
    ``InvalidRequestError`` if a line is missing either field or no scenes
    are found.
    """
    pairs: list[tuple[str, str]] = []
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        parts = [p.strip() for p in line.split("|", 1)]
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise InvalidRequestError(
                f"Line {lineno}: expected 'visual prompt | spoken subtitle'"
            )
        pairs.append((parts[0], parts[1]))

    if not pairs:
        raise InvalidRequestError(
            "No valid scenes found.\n"
            "Use format:  visual prompt | spoken subtitle"
        )
    return build_scenes(pairs)
