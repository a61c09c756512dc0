"""Marker for patch arguments the caller did not provide.

Patch-style operations must tell "field omitted" apart from "field set
to None/empty", so their keyword arguments default to ``UNSET``.
"""

from enum import Enum
from typing import Final, Literal


class _Unset(Enum):
    token = 'UNSET'

    def __repr__(self) -> str:
        return 'UNSET'


UNSET: Final = _Unset.token

Unset = Literal[_Unset.token]
