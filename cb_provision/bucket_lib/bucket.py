from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Tuple

from cb_provision.cb_constants import CbServer


def keyed_by_name(items):
    """
    Build a read-only name -> spec mapping from either a mapping or an
    iterable of specs. Later entries with the same name win.
    """
    if isinstance(items, Mapping):
        items = items.values()
    return MappingProxyType({item.name: item for item in items})


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    max_ttl: int = 0
    has_primary_index: bool = True
    secondary_indexes: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.max_ttl < 0:
            raise ValueError("maxTTL for collection '%s' cannot be negative"
                             % self.name)
        object.__setattr__(self, "secondary_indexes",
                           tuple(self.secondary_indexes))

    def __str__(self):
        return self.name

    def with_max_ttl(self, max_ttl):
        return replace(self, max_ttl=max_ttl)

    def with_primary_index(self, create):
        return replace(self, has_primary_index=create)

    def with_secondary_index(self, statement):
        """
        :param statement: complete CREATE INDEX statement for this collection
        """
        return replace(self,
                       secondary_indexes=self.secondary_indexes + (statement,))

    def get_dict_object(self):
        return {"name": self.name, "maxTTL": self.max_ttl}


@dataclass(frozen=True)
class ScopeSpec:
    name: str
    collections: Mapping[str, CollectionSpec] = field(default_factory=dict,
                                                      hash=False)

    def __post_init__(self):
        object.__setattr__(self, "collections",
                           keyed_by_name(self.collections))

    def __str__(self):
        return self.name

    def with_collection(self, collection):
        """Adding a collection with an existing name replaces the former"""
        collections = dict(self.collections)
        collections[collection.name] = collection
        return replace(self, collections=collections)

    def get_dict_object(self):
        return {"name": self.name}


@dataclass(frozen=True)
class BucketSpec:
    name: str
    quota: int = CbServer.Settings.MinRAMQuota.BUCKET
    flush_enabled: bool = False
    has_primary_index: bool = True
    scopes: Mapping[str, ScopeSpec] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if self.quota < CbServer.Settings.MinRAMQuota.BUCKET:
            raise ValueError("Bucket quota cannot be less than %sMB!"
                             % CbServer.Settings.MinRAMQuota.BUCKET)
        object.__setattr__(self, "scopes", keyed_by_name(self.scopes))

    def __str__(self):
        return self.name

    @property
    def has_scopes(self):
        return len(self.scopes) > 0

    def with_quota(self, quota):
        return replace(self, quota=quota)

    def with_flush_enabled(self, flush_enabled):
        return replace(self, flush_enabled=flush_enabled)

    def with_primary_index(self, create):
        return replace(self, has_primary_index=create)

    def with_scope(self, scope):
        """Adding a scope with an existing name replaces the former"""
        scopes = dict(self.scopes)
        scopes[scope.name] = scope
        return replace(self, scopes=scopes)

    def get_dict_object(self):
        return {"name": self.name,
                "ramQuotaMB": self.quota,
                "flushEnabled": 1 if self.flush_enabled else 0}
