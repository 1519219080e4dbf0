"""Abstract interface for player display-name lookups."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shared.dal.models import RosterEntry


class RosterProvider(ABC):
    @abstractmethod
    async def get_roster(self, player_ids: Sequence[str]) -> list[RosterEntry]:
        """Resolve players in the requested order. Unknown ids are omitted."""
