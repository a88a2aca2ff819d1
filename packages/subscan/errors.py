"""Exceptions raised by the public ``subscan`` entry points.

Malformed statement content is never an error: bad lines are skipped and an
empty result is a normal outcome. Only structurally invalid arguments fail.
"""

from __future__ import annotations


class StatementInputError(TypeError):
    """Raised when an entry point receives an argument of the wrong shape.

    Examples: ``bytes`` or ``None`` instead of statement text, or a transaction
    collection containing items that are not ``RawTransaction``.
    """


__all__ = ["StatementInputError"]
