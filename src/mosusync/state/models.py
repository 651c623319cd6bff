"""Typed state held by the reactive stores.

Two slices are kept apart so that cheap, frequently-changing view settings
never force consumers of the (large) collection to recompute:

* :class:`CollectionState` holds beatmap items and the todo/done id lists.
  It is a plain frozen dataclass because its sequences must be adopted by
  reference; a Pydantic model would copy them during validation.
* :class:`ViewState` holds filter, sort and display settings.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from enum import StrEnum
from types import MappingProxyType
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, SkipValidation, field_serializer
from pydantic.alias_generators import to_camel


class ViewMode(StrEnum):
    ALL = "all"
    TODO = "todo"
    COMPLETED = "completed"


class SortMode(StrEnum):
    DATE_ADDED = "dateAdded"
    DATE_MODIFIED = "dateModified"
    NAME = "name"
    PROGRESS = "progress"
    STAR_RATING = "starRating"
    DIFFICULTY = "difficulty"
    MODE = "mode"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


#: Settings every view state carries; incoming settings are merged over these.
DEFAULT_SETTINGS: MappingProxyType[str, Any] = MappingProxyType(
    {
        "ignoreGuestDifficulties": False,
        "groupMapsBySong": False,
    }
)


@dataclasses.dataclass(frozen=True)
class CollectionState:
    """Bulk beatmap data.

    The sequences are never copied or mutated; a new state is built around
    the exact objects received from the bridge.
    """

    items: Sequence[Any] = ()
    todo_ids: Sequence[Any] = ()
    done_ids: Sequence[Any] = ()

    def to_wire(self) -> dict[str, Any]:
        return {
            "beatmapItems": self.items,
            "todoIds": self.todo_ids,
            "doneIds": self.done_ids,
        }


class _ViewModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class SortState(_ViewModel):
    mode: SortMode = SortMode.DATE_ADDED
    direction: SortDirection = SortDirection.DESC


class SrFilter(_ViewModel):
    """Star rating range; ``max >= 10`` means "no upper bound"."""

    min: float = 0.0
    max: float = 10.0


class ViewState(_ViewModel):
    """UI-facing state, replaced wholesale on every accepted update."""

    view_mode: ViewMode = ViewMode.ALL
    sort_state: SortState = Field(default_factory=SortState)
    search_query: str = ""
    sr_filter: SrFilter = Field(default_factory=SrFilter)
    # Read-only mapping; rebuilt, never mutated, on every accepted update.
    settings: Annotated[Mapping[str, Any], SkipValidation] = Field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_SETTINGS))
    )
    effective_mapper_name: str = ""
    # Adopted by reference, like the collection arrays.
    items_to_render_ids: Annotated[Sequence[Any], SkipValidation] = ()

    def setting(self, key: str) -> Any:
        return self.settings.get(key, DEFAULT_SETTINGS.get(key))

    @field_serializer("settings")
    def serialize_settings(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        return dict(settings)

    def to_wire(self) -> dict[str, Any]:
        """Dump using the camelCase keys the bridge speaks."""
        return self.model_dump(by_alias=True)


DEFAULT_COLLECTION_STATE = CollectionState()
DEFAULT_VIEW_STATE = ViewState()
