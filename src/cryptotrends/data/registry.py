"""Read-only registry of known assets used to resolve display labels."""

from __future__ import annotations

from typing import Any, Iterable

from pydantic import ValidationError

from cryptotrends.exceptions import ConfigError
from cryptotrends.types import KnownAsset

UNKNOWN_LABEL = "Unknown"


class KnownAssetRegistry:
    """Lookup of known assets by id and by ticker symbol.

    The registry is supplied by the surrounding application and is never
    mutated by the pipeline.

    :param assets: Registry entries; later duplicates of an id are ignored.
    """

    def __init__(self, assets: Iterable[KnownAsset] = ()) -> None:
        self._by_id: dict[str, KnownAsset] = {}
        for asset in assets:
            self._by_id.setdefault(str(asset.id), asset)

    @classmethod
    def from_config(cls, entries: list[dict[str, Any]]) -> KnownAssetRegistry:
        """Build a registry from raw configuration mappings.

        :param entries: Mappings with at least ``id`` and ``name``.
        :raises ConfigError: If an entry is malformed.
        """
        assets = []
        for entry in entries:
            try:
                assets.append(KnownAsset.model_validate(entry))
            except ValidationError as e:
                raise ConfigError(f"Invalid known asset entry {entry!r}: {e}") from e
        return cls(assets)

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._by_id

    def __iter__(self):
        return iter(self._by_id.values())

    def get(self, asset_id: str) -> KnownAsset | None:
        return self._by_id.get(asset_id)

    def find_by_symbol(self, symbol: str) -> KnownAsset | None:
        """Case-insensitive lookup by ticker symbol."""
        wanted = symbol.upper()
        for asset in self._by_id.values():
            if asset.symbol.upper() == wanted:
                return asset
        return None

    def label_for(self, asset_id: str) -> str:
        """Display name for an asset, ``"Unknown"`` if not registered."""
        asset = self._by_id.get(asset_id)
        if asset is None or not asset.name:
            return UNKNOWN_LABEL
        return asset.name


__all__ = ["KnownAssetRegistry", "UNKNOWN_LABEL"]
