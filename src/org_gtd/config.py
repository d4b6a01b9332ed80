"""
Static configuration.

GtdConfig is built once at startup (from the environment or directly) and
handed to every component through the Workspace. Nothing reads os.environ
after that.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Mapping, Optional, Tuple

DEFAULT_EXCLUDE_DIRS = ".git,.trash,node_modules"
DEFAULT_SYNC_STATES = ("TODO", "NEXT", "WAITING")


def _parse_list(raw: str) -> Tuple[str, ...]:
    """Parse a comma-separated list, dropping empty parts."""
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _parse_bool(raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class GtdConfig:
    root: Path
    inbox_file: str = "Inbox.org"
    archive_file: str = "Archive.org"
    projects_dir: str = "Projects"
    areas_dir: str = "Areas"
    zk_dir: Optional[Path] = None
    exclude_dirs: FrozenSet[str] = field(
        default_factory=lambda: frozenset(_parse_list(DEFAULT_EXCLUDE_DIRS))
    )
    sync_states: Tuple[str, ...] = DEFAULT_SYNC_STATES
    calendar_enabled: bool = False
    reminders_enabled: bool = False
    calendar_name: str = "GTD"
    reminders_list: str = "GTD"
    event_duration: int = 60
    deadline_as_allday: bool = True
    osascript_timeout: float = 30.0
    api_enabled: bool = True
    api_port: int = 9410

    @property
    def inbox_path(self) -> Path:
        return self.root / self.inbox_file

    @property
    def archive_path(self) -> Path:
        return self.root / self.archive_file

    @property
    def projects_path(self) -> Path:
        return self.root / self.projects_dir

    @property
    def areas_path(self) -> Path:
        return self.root / self.areas_dir

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GtdConfig":
        """
        Build a config from environment variables.

        Raises:
            ValueError: GTD_ROOT is unset, or a numeric variable is malformed
        """
        env = os.environ if environ is None else environ
        root = env.get("GTD_ROOT", "")
        if not root:
            raise ValueError("GTD_ROOT environment variable is not set")
        zk_dir = env.get("GTD_ZK_DIR")
        return cls(
            root=Path(root).expanduser(),
            inbox_file=env.get("GTD_INBOX_FILE", "Inbox.org"),
            archive_file=env.get("GTD_ARCHIVE_FILE", "Archive.org"),
            projects_dir=env.get("GTD_PROJECTS_DIR", "Projects"),
            areas_dir=env.get("GTD_AREAS_DIR", "Areas"),
            zk_dir=Path(zk_dir).expanduser() if zk_dir else None,
            exclude_dirs=frozenset(_parse_list(env.get("EXCLUDE_DIRS", DEFAULT_EXCLUDE_DIRS))),
            sync_states=_parse_list(env.get("GTD_SYNC_STATES", ",".join(DEFAULT_SYNC_STATES))),
            calendar_enabled=_parse_bool(env.get("CALENDAR_ENABLED"), False),
            reminders_enabled=_parse_bool(env.get("REMINDERS_ENABLED"), False),
            calendar_name=env.get("GTD_CALENDAR", "GTD"),
            reminders_list=env.get("GTD_REMINDERS_LIST", "GTD"),
            event_duration=int(env.get("EVENT_DURATION", "60")),
            osascript_timeout=float(env.get("OSASCRIPT_TIMEOUT", "30")),
            api_enabled=_parse_bool(env.get("API_ENABLED"), True),
            api_port=int(env.get("API_PORT", "9410")),
        )
