from __future__ import annotations

import json
import logging
from pathlib import Path

from binengine.domain.entities.position import Position
from binengine.domain.exceptions import LookupFailedError, PositionNotFoundError
from binengine.domain.services.position_parsing import parse_position, position_id_of


logger = logging.getLogger(__name__)


class JsonPositionRepository:
    """Reads positions from a JSON document: a list of payloads or ``{"positions": [...]}``.

    The file is re-read on every lookup so edits are picked up without a restart.
    Only the payload matching the requested id is parsed.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    async def get_position(self, *, position_id: str) -> Position:
        for payload in self._load():
            if position_id_of(payload) == position_id:
                return parse_position(payload)
        raise PositionNotFoundError(f"Position {position_id} not found in {self._path}.")

    async def list_positions(self) -> list[Position]:
        return [parse_position(item) for item in self._load()]

    def _load(self) -> list:
        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise LookupFailedError(f"Could not read positions from {self._path}: {exc}") from exc

        payloads = document.get("positions", []) if isinstance(document, dict) else document
        if not isinstance(payloads, list):
            raise LookupFailedError(f"Positions file {self._path} must hold a list of positions.")

        logger.debug("json_position_repository: loaded path=%s payloads=%s", self._path, len(payloads))
        return payloads
