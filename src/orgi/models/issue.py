"""Data models for org document issues."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

# Property keys linking an issue to the source line it was gathered from
SOURCE_FILE = "SOURCE_FILE"
SOURCE_LINE = "SOURCE_LINE"
SOURCE_COLUMN = "SOURCE_COLUMN"
SOURCE_UUID = "SOURCE_UUID"
SOURCE_KEYS = (SOURCE_FILE, SOURCE_LINE, SOURCE_COLUMN, SOURCE_UUID)

# Accepted spellings of the created timestamp property, in lookup order
CREATED_KEYS = ("CREATED", "CREATED_AT", "created", "created_at")


class IssueState(Enum):
    """Workflow state of an issue; values are the document keywords."""

    TODO = "TODO"
    IN_PROGRESS = "INPROGRESS"
    DONE = "DONE"
    KILL = "KILL"

    @classmethod
    def from_keyword(cls, keyword: str) -> IssueState | None:
        """Return the state for a headline keyword, or None if unknown."""
        for state in cls:
            if state.value == keyword:
                return state
        return None


class Priority(Enum):
    """Issue priority as written in a ``[#A]`` cookie."""

    NONE = "None"
    A = "A"
    B = "B"
    C = "C"

    @classmethod
    def parse(cls, value: str) -> Priority | None:
        """Parse a priority letter (or "None"), case-insensitively."""
        normalized = value.strip().upper()
        for priority in cls:
            if priority.value.upper() == normalized:
                return priority
        return None


class PropertyMap(MutableMapping[str, str]):
    """Ordered string map with case-insensitive keys.

    The spelling used when a key is first set is kept for iteration and
    serialization; later writes with a different case update the value only.
    """

    def __init__(self, data: Mapping[str, str] | Iterable[tuple[str, str]] = ()) -> None:
        self._data: dict[str, tuple[str, str]] = {}
        self.update(data)

    def __getitem__(self, key: str) -> str:
        return self._data[key.casefold()][1]

    def __setitem__(self, key: str, value: str) -> None:
        folded = key.casefold()
        original = self._data[folded][0] if folded in self._data else key
        self._data[folded] = (original, value)

    def __delitem__(self, key: str) -> None:
        del self._data[key.casefold()]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._data.values())

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._data

    def __repr__(self) -> str:
        return f"PropertyMap({dict(self.items())!r})"

    def first(self, *keys: str) -> str | None:
        """Return the value of the first key present, or None."""
        for key in keys:
            if key in self:
                return self[key]
        return None

    def copy(self) -> PropertyMap:
        return PropertyMap(self.items())


@dataclass(frozen=True)
class OrgEntry:
    """One parsed headline block, before it becomes an Issue."""

    headline: str
    level: int
    state: IssueState
    priority: Priority
    tags: tuple[str, ...]
    properties: PropertyMap
    body: str
    line_number: int = 0


def _positive_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        number = int(value.strip())
    except ValueError:
        return None
    return number if number > 0 else None


@dataclass
class Issue:
    """An issue tracked in the org document.

    An issue whose properties carry all four ``SOURCE_*`` keys was gathered
    from a source TODO comment.
    """

    id: str
    title: str
    description: str
    created_at: datetime
    state: IssueState = IssueState.TODO
    priority: Priority = Priority.NONE
    tags: list[str] = field(default_factory=list)
    properties: PropertyMap = field(default_factory=PropertyMap)
    level: int = 1

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Issue id cannot be empty")
        # Tags are an ordered set
        self.tags = list(dict.fromkeys(self.tags))
        if not isinstance(self.properties, PropertyMap):
            self.properties = PropertyMap(self.properties)

    def __setattr__(self, name: str, value: object) -> None:
        if name == "id" and "id" in self.__dict__:
            raise AttributeError("Issue id is immutable")
        super().__setattr__(name, value)

    def __str__(self) -> str:
        tags = " ".join(f":{tag}:" for tag in self.tags)
        return f"[{self.id}] {self.title} ({self.state.value}) [{self.priority.value}] {tags}".rstrip()

    @property
    def has_source_reference(self) -> bool:
        """True if all four source properties are present and well-formed."""
        return (
            all(key in self.properties for key in SOURCE_KEYS)
            and bool(self.properties[SOURCE_FILE].strip())
            and self.source_line is not None
        )

    @property
    def source_file(self) -> str | None:
        return self.properties.get(SOURCE_FILE)

    @property
    def source_line(self) -> int | None:
        return _positive_int(self.properties.get(SOURCE_LINE))

    @property
    def source_column(self) -> int | None:
        return _positive_int(self.properties.get(SOURCE_COLUMN))

    @property
    def source_uuid(self) -> str | None:
        return self.properties.get(SOURCE_UUID)

    @classmethod
    def from_org_entry(cls, entry: OrgEntry, created_at: datetime) -> Issue:
        """Build an Issue from a parsed entry and its decoded timestamp.

        ``TITLE``/``DESCRIPTION`` properties override the headline and body,
        ``PRIORITY``/``TAGS`` properties override the cookie and headline tags.
        The caller has already validated ``ID``.
        """
        props = entry.properties

        priority = entry.priority
        raw_priority = props.get("PRIORITY")
        if raw_priority is not None:
            parsed = Priority.parse(raw_priority)
            if parsed is not None:
                priority = parsed

        tags = list(entry.tags)
        raw_tags = props.get("TAGS")
        if raw_tags is not None:
            tags = [tag.strip() for tag in raw_tags.split(":") if tag.strip()]

        return cls(
            id=props["ID"],
            title=props.get("TITLE") or entry.headline,
            description=props["DESCRIPTION"] if "DESCRIPTION" in props else entry.body,
            created_at=created_at,
            state=entry.state,
            priority=priority,
            tags=tags,
            properties=props.copy(),
            level=entry.level,
        )
