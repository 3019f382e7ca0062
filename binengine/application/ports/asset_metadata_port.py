from __future__ import annotations

from typing import Protocol


class AssetMetadataPort(Protocol):
    async def get_decimals(self, *, asset_id: str) -> int:
        ...
