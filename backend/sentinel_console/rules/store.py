"""In-memory keyed store of Sentinel configurations.

Holds two layers per hotel: the last configuration the backend returned
(``server``) and the user's uncommitted edits (``local``). Values are only
ever replaced with new objects, never modified in place.
"""

from typing import Any


class RuleStore:
    """Per-hotel configuration layers plus transient workflow markers."""

    def __init__(self) -> None:
        self._server: dict[str, dict[str, Any]] = {}
        self._local: dict[str, dict[str, Any]] = {}
        self._pms_ids: dict[str, str] = {}
        self.syncing: set[str] = set()
        self.saving: set[str] = set()
        self.registry_loaded = False

    # -- server layer --------------------------------------------------------

    def server(self, hotel_id: str) -> dict[str, Any] | None:
        return self._server.get(hotel_id)

    def set_server(self, hotel_id: str, config: dict[str, Any]) -> None:
        self._server[hotel_id] = config

    def replace_server(self, configs: dict[str, dict[str, Any]]) -> None:
        self._server = dict(configs)

    def server_configs(self) -> dict[str, dict[str, Any]]:
        return dict(self._server)

    # -- local-edit layer ----------------------------------------------------

    def local(self, hotel_id: str) -> dict[str, Any] | None:
        return self._local.get(hotel_id)

    def set_local(self, hotel_id: str, config: dict[str, Any]) -> None:
        self._local[hotel_id] = config

    def local_edits(self) -> dict[str, dict[str, Any]]:
        return dict(self._local)

    # -- PMS property ids ----------------------------------------------------

    def pms_property_id(self, hotel_id: str) -> str | None:
        return self._pms_ids.get(hotel_id)

    def replace_pms_ids(self, ids: dict[str, str]) -> None:
        self._pms_ids = dict(ids)

    def pms_ids(self) -> dict[str, str]:
        return dict(self._pms_ids)

    def knows(self, hotel_id: str) -> bool:
        return hotel_id in self._server or hotel_id in self._local
