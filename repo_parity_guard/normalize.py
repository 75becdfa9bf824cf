"""
Item normalization.

Each function takes one raw API item (plus the system it came from) and
returns one immutable, comparable item. Field lookups go through ordered
alias tables so the accepted payload shapes are listed in one place.
Nothing here performs I/O.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Iterable, Union

from repo_parity_guard.coordinates import System

BOT_AUTHOR = "[bot]"

# Timestamps below this are taken to be in seconds rather than milliseconds
_SECONDS_CUTOFF = 10**11

BYTES_PER_MB = 1024 * 1024


class ItemKind(str, Enum):
    BRANCH = "branch"
    TAG = "tag"
    COMMIT = "commit"
    PULL_REQUEST = "pull_request"
    TEAM = "team"
    WEBHOOK = "webhook"
    CUSTOM_PROPERTY = "custom_property"
    CODEOWNER_ENTRY = "codeowner_entry"
    LFS_OBJECT = "lfs_object"


class PullRequestState(str, Enum):
    OPEN = "OPEN"
    MERGED = "MERGED"
    DECLINED = "DECLINED"


@dataclass(frozen=True)
class Branch:
    """Equal to another Branch when the names match."""

    kind: ClassVar[ItemKind] = ItemKind.BRANCH
    name: str
    is_default: bool = field(default=False, compare=False)


@dataclass(frozen=True)
class Tag:
    kind: ClassVar[ItemKind] = ItemKind.TAG
    name: str


@dataclass(frozen=True)
class Commit:
    """Equal to another Commit when the hashes match."""

    kind: ClassVar[ItemKind] = ItemKind.COMMIT
    sha: str
    author: str = field(default="", compare=False)
    date: int | None = field(default=None, compare=False)  # epoch milliseconds


@dataclass(frozen=True)
class PullRequest:
    kind: ClassVar[ItemKind] = ItemKind.PULL_REQUEST
    state: PullRequestState


@dataclass(frozen=True)
class Team:
    kind: ClassVar[ItemKind] = ItemKind.TEAM
    name: str
    permission: str


@dataclass(frozen=True)
class Webhook:
    kind: ClassVar[ItemKind] = ItemKind.WEBHOOK
    name_or_url: str


@dataclass(frozen=True)
class CustomProperty:
    kind: ClassVar[ItemKind] = ItemKind.CUSTOM_PROPERTY
    name: str
    value: str | None


@dataclass(frozen=True)
class CodeownerEntry:
    kind: ClassVar[ItemKind] = ItemKind.CODEOWNER_ENTRY
    path: str
    owners: tuple[str, ...]


@dataclass(frozen=True)
class LfsObject:
    """Equal to another LfsObject when path, hash and size all match."""

    kind: ClassVar[ItemKind] = ItemKind.LFS_OBJECT
    path: str
    content_hash: str
    size_bytes: int


NormalizedItem = Union[
    Branch,
    Tag,
    Commit,
    PullRequest,
    Team,
    Webhook,
    CustomProperty,
    CodeownerEntry,
    LfsObject,
]

# --- Field alias tables (consulted in order, first non-empty wins) ---

REF_NAME_FIELDS = {
    System.SOURCE: (("displayId",), ("id",)),
    System.DEST: (("name",),),
}
COMMIT_SHA_FIELDS = {
    System.SOURCE: (("id",),),
    System.DEST: (("sha",),),
}
# Display name first, machine account identifier second
COMMIT_AUTHOR_FIELDS = {
    System.SOURCE: (("author", "displayName"), ("author", "name")),
    System.DEST: (("commit", "author", "name"), ("author", "login")),
}
COMMIT_DATE_FIELDS = {
    System.SOURCE: (("authorTimestamp",), ("committerTimestamp",)),
    System.DEST: (("commit", "author", "date"), ("commit", "committer", "date")),
}
TEAM_NAME_FIELDS = (("name",), ("slug",))
TEAM_PERMISSION_FIELDS = (("permission",), ("role_name",))
# Target URL, then human name, then internal id
WEBHOOK_ID_FIELDS = {
    System.SOURCE: (("url",), ("name",), ("id",)),
    System.DEST: (("config", "url"), ("name",), ("id",)),
}
PROPERTY_NAME_FIELDS = (("property_name",), ("name",))
PROPERTY_VALUE_FIELDS = (("value",),)
LFS_PATH_FIELDS = (("name",), ("path",))
LFS_HASH_FIELDS = (("oid",),)
LFS_SIZE_FIELDS = (("size",),)


def _dig(raw: Any, path: tuple[str, ...]) -> Any:
    value = raw
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def first_field(raw: Any, aliases: Iterable[tuple[str, ...]]) -> Any:
    """Return the first non-empty value found along the alias paths."""
    for path in aliases:
        value = _dig(raw, path)
        if value is not None and value != "":
            return value
    return None


def _strip_ref(name: str) -> str:
    for prefix in ("refs/heads/", "refs/tags/"):
        if name.startswith(prefix):
            return name[len(prefix) :]
    return name


def to_epoch_millis(value: Any) -> int | None:
    """
    Convert a timestamp to epoch milliseconds.

    Accepts integer seconds or milliseconds (numbers or digit strings) and
    ISO-8601 strings. Naive datetimes are taken as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if abs(value) < _SECONDS_CUTOFF:
            return int(value * 1000)
        return int(value)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    return None


def normalize_branch(raw: dict[str, Any], system: System) -> Branch:
    name = _strip_ref(str(first_field(raw, REF_NAME_FIELDS[system]) or ""))
    # Only the source marks its default branch per item
    is_default = system is System.SOURCE and bool(raw.get("isDefault"))
    return Branch(name=name, is_default=is_default)


def normalize_tag(raw: dict[str, Any], system: System) -> Tag:
    return Tag(name=_strip_ref(str(first_field(raw, REF_NAME_FIELDS[system]) or "")))


def normalize_commit(raw: dict[str, Any], system: System) -> Commit:
    author = first_field(raw, COMMIT_AUTHOR_FIELDS[system])
    return Commit(
        sha=str(first_field(raw, COMMIT_SHA_FIELDS[system]) or ""),
        author=str(author) if author else BOT_AUTHOR,
        date=to_epoch_millis(first_field(raw, COMMIT_DATE_FIELDS[system])),
    )


def normalize_pull_request(raw: dict[str, Any], system: System) -> PullRequest:
    """
    Reduce a pull request to its lifecycle state.

    GitHub has no "merged" list state: a closed request counts as merged when
    it carries ``merged_at`` (or ``merged: true``), otherwise as declined.
    """
    state = str(raw.get("state", "")).upper()
    if state == "OPEN":
        return PullRequest(PullRequestState.OPEN)
    if system is System.SOURCE:
        if state == "MERGED":
            return PullRequest(PullRequestState.MERGED)
        return PullRequest(PullRequestState.DECLINED)
    if raw.get("merged_at") or raw.get("merged") is True:
        return PullRequest(PullRequestState.MERGED)
    return PullRequest(PullRequestState.DECLINED)


def normalize_team(raw: dict[str, Any]) -> Team | None:
    """Return the team grant, or None for an inherited (indirect) grant."""
    if raw.get("inherited"):
        return None
    return Team(
        name=str(first_field(raw, TEAM_NAME_FIELDS) or ""),
        permission=str(first_field(raw, TEAM_PERMISSION_FIELDS) or ""),
    )


def normalize_webhook(raw: dict[str, Any], system: System) -> Webhook:
    return Webhook(name_or_url=str(first_field(raw, WEBHOOK_ID_FIELDS[system]) or ""))


def _property_value(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def normalize_custom_properties(payload: Any) -> list[CustomProperty]:
    """
    Normalize a custom-property payload.

    Accepts a list of ``{"property_name": ..., "value": ...}`` objects (with
    ``name`` accepted for the key) or a plain ``{name: value}`` mapping.
    Objects without a known key fall back to their first key / last value.
    """
    properties = []
    if isinstance(payload, list):
        for item in payload:
            if not isinstance(item, dict) or not item:
                continue
            name = first_field(item, PROPERTY_NAME_FIELDS)
            if name is None:
                name = next(iter(item))
            value = first_field(item, PROPERTY_VALUE_FIELDS)
            if value is None and "value" not in item:
                value = list(item.values())[-1]
            properties.append(CustomProperty(str(name), _property_value(value)))
    elif isinstance(payload, dict):
        for name, value in payload.items():
            properties.append(CustomProperty(str(name), _property_value(value)))
    return properties


def parse_codeowners(text: str) -> list[CodeownerEntry]:
    """
    Parse CODEOWNERS text into path / owners entries.

    Blank lines and comment lines are skipped. Every token after the path
    glob is an owner, up to an inline ``#`` comment.
    """
    entries = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        tokens = stripped.split()
        owners = []
        for token in tokens[1:]:
            if token.startswith("#"):
                break
            owners.append(token)
        entries.append(CodeownerEntry(path=tokens[0], owners=tuple(owners)))
    return entries


def merge_codeowners(texts: Iterable[str]) -> list[str]:
    """Flatten owners from every CODEOWNERS file found, first-seen order, no duplicates."""
    owners: list[str] = []
    seen = set()
    for text in texts:
        for entry in parse_codeowners(text):
            for owner in entry.owners:
                if owner not in seen:
                    seen.add(owner)
                    owners.append(owner)
    return owners


def normalize_lfs_object(raw: dict[str, Any]) -> LfsObject:
    size = first_field(raw, LFS_SIZE_FIELDS)
    return LfsObject(
        path=str(first_field(raw, LFS_PATH_FIELDS) or ""),
        content_hash=str(first_field(raw, LFS_HASH_FIELDS) or ""),
        size_bytes=int(size or 0),
    )


def normalize_lfs_listing(payload: Any) -> list[LfsObject]:
    """Normalize ``git lfs ls-files --json`` output."""
    files = payload.get("files") if isinstance(payload, dict) else None
    return [normalize_lfs_object(item) for item in files or []]


def normalize(raw: Any, system: System, kind: ItemKind) -> NormalizedItem | None:
    """Dispatch one raw item to the normalizer for its kind."""
    if kind is ItemKind.BRANCH:
        return normalize_branch(raw, system)
    if kind is ItemKind.TAG:
        return normalize_tag(raw, system)
    if kind is ItemKind.COMMIT:
        return normalize_commit(raw, system)
    if kind is ItemKind.PULL_REQUEST:
        return normalize_pull_request(raw, system)
    if kind is ItemKind.TEAM:
        return normalize_team(raw)
    if kind is ItemKind.WEBHOOK:
        return normalize_webhook(raw, system)
    if kind is ItemKind.LFS_OBJECT:
        return normalize_lfs_object(raw)
    raise ValueError(f"{kind.value} items are normalized from whole payloads")
