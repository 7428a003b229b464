"""Models for translation dispatch.

Defines the Batch handed from the accumulator to the dispatcher.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.cache.cell import TranslationCell
    from core.trans.interface import TransInterface

__all__: list[str] = ["Batch"]


@dataclass
class Batch:
    """Cells detached together for one provider call.

    Attributes:
        identity (str): Client identity whose submissions formed the batch.
        provider (TransInterface): Engine that translates the batch.
        cells (list[TranslationCell]): Cells in submission order.
        char_count (int): Combined length of the originals.
    """

    identity: str
    provider: TransInterface
    cells: list[TranslationCell] = field(default_factory=list)
    char_count: int = 0

    @property
    def originals(self) -> list[str]:
        return [cell.original for cell in self.cells]

    def __len__(self) -> int:
        return len(self.cells)
