"""Identity allocation for listener records.

Bindings that are not given an explicit base id draw a BindingId from a
process-wide counter. BindingId never compares equal to a caller-supplied
int or str, so automatic and explicit identities cannot collide.
"""

import itertools
from dataclasses import dataclass

# itertools.count is thread-safe (C-level GIL atomic)
_id_counter = itertools.count(1)


@dataclass(frozen=True, slots=True)
class BindingId:
    value: int

    def __repr__(self) -> str:
        return f"BindingId({self.value})"


def new_id() -> BindingId:
    return BindingId(next(_id_counter))
