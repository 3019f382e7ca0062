from __future__ import annotations

from typing import Protocol

from binengine.domain.entities.position import Position


class PositionPort(Protocol):
    async def get_position(self, *, position_id: str) -> Position:
        ...
