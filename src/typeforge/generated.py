"""Home module of composed types.

Every composed class reports this module as its ``__module__`` and is
attached here under its name, so pickle can find serializable types by
qualified name.
"""

from __future__ import annotations


def register(cls: type) -> None:
    globals()[cls.__qualname__] = cls
