"""Shared utilities."""

from modtopo.utils.fileio import atomic_write_json, atomic_write_text, to_jsonable

__all__ = ['atomic_write_json', 'atomic_write_text', 'to_jsonable']
