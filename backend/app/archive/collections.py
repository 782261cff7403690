"""Known Internet Archive movie collections offered in the admin console."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class CollectionDescriptor:
    """A browsable archive collection.

    ``count`` is the archive's approximate size, filled in by the stats
    aggregator. It is informational only.
    """

    key: str
    name: str
    icon: str
    description: str
    count: int | None = None

    def with_count(self, count: int | None) -> CollectionDescriptor:
        return replace(self, count=count)


COLLECTIONS: tuple[CollectionDescriptor, ...] = (
    CollectionDescriptor(
        key="feature_films",
        name="Feature Films",
        icon="🎬",
        description="Full-length public domain feature films",
    ),
    CollectionDescriptor(
        key="film_noir",
        name="Film Noir",
        icon="🕵️",
        description="Crime dramas and detective classics from the noir era",
    ),
    CollectionDescriptor(
        key="SciFi_Horror",
        name="Sci-Fi & Horror",
        icon="👽",
        description="Classic science fiction and horror movies",
    ),
    CollectionDescriptor(
        key="comedy_films",
        name="Comedy Films",
        icon="😂",
        description="Public domain comedies and screwball classics",
    ),
    CollectionDescriptor(
        key="silent_films",
        name="Silent Films",
        icon="🎞️",
        description="Silent era cinema with intertitles",
    ),
    CollectionDescriptor(
        key="classic_cartoons",
        name="Classic Cartoons",
        icon="🐭",
        description="Golden age animated shorts",
    ),
    CollectionDescriptor(
        key="classic_tv",
        name="Classic TV",
        icon="📺",
        description="Episodes of vintage television series",
    ),
)


def get_collection(key: str) -> CollectionDescriptor | None:
    """Look up a known collection by key."""
    for collection in COLLECTIONS:
        if collection.key == key:
            return collection
    return None
