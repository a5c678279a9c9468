from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .errors import GatewayError
from .repository import PROFILES, DataGateway, Row, in_

logger = logging.getLogger(__name__)

PROFILE_PROJECTION = ("name", "email", "avatar_url")


@dataclass(frozen=True)
class ForeignKey:
    """
    A row field referencing ``profiles.id``.

    Display fields are attached as ``<prefix>_name``, ``<prefix>_email`` and
    ``<prefix>_avatar_url``.
    """

    field: str
    prefix: str


USER = (ForeignKey("user_id", "user"),)
MATCH_USERS = (ForeignKey("user1_id", "user1"), ForeignKey("user2_id", "user2"))
REPORT_USERS = (ForeignKey("reporter_id", "reporter"), ForeignKey("reported_id", "reported"))


class ProfileEnricher:
    """
    Attach profile display fields to rows that reference profiles.

    All distinct ids across the row set are fetched with one ``in`` query per
    chunk. Ids that are missing, dangling, or whose lookup failed leave the
    display fields as ``None``; the row itself is always kept.
    """

    def __init__(
        self,
        gateway: DataGateway,
        projection: Sequence[str] = PROFILE_PROJECTION,
        chunk_size: int = 200,
    ):
        self.gateway = gateway
        self.projection = tuple(projection)
        self.chunk_size = max(1, chunk_size)

    def enrich(self, rows: Sequence[Mapping[str, Any]], keys: Sequence[ForeignKey]) -> List[Row]:
        ids = self._collect_ids(rows, keys)
        profiles = self._lookup(ids)
        enriched: List[Row] = []
        for row in rows:
            result = dict(row)
            for key in keys:
                profile = profiles.get(_as_key(row.get(key.field))) or {}
                for name in self.projection:
                    result[f"{key.prefix}_{name}"] = profile.get(name)
            enriched.append(result)
        return enriched

    @staticmethod
    def _collect_ids(rows: Sequence[Mapping[str, Any]], keys: Sequence[ForeignKey]) -> List[str]:
        seen: Dict[str, None] = {}
        for row in rows:
            for key in keys:
                identifier = _as_key(row.get(key.field))
                if identifier is not None:
                    seen.setdefault(identifier, None)
        return list(seen)

    def _lookup(self, ids: Sequence[str]) -> Dict[str, Row]:
        profiles: Dict[str, Row] = {}
        fields = ("id",) + self.projection
        for offset in range(0, len(ids), self.chunk_size):
            chunk = ids[offset:offset + self.chunk_size]
            try:
                found = self.gateway.select(PROFILES, fields=fields, filters=[in_("id", chunk)])
            except GatewayError as exc:
                logger.warning("Failed to load %d profiles for enrichment: %s", len(chunk), exc)
                continue
            for profile in found:
                identifier = _as_key(profile.get("id"))
                if identifier is not None:
                    profiles[identifier] = profile
        return profiles


def _as_key(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)
