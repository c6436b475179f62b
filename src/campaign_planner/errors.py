from __future__ import annotations


class InvalidInput(ValueError):
    pass
