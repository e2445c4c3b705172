"""Strategy core: conversion, position queries, entry/exit, allocation, lifecycle."""
from .allocator import CapitalAllocator
from .converter import ValueConverter
from .entry_exit import DirectEntryExit, EntryExitKind, RoutedEntryExit, build_entry_exit
from .lifecycle import PoolStrategy
from .position import PositionAccessor

__all__ = [
    "CapitalAllocator",
    "DirectEntryExit",
    "EntryExitKind",
    "PoolStrategy",
    "PositionAccessor",
    "RoutedEntryExit",
    "ValueConverter",
    "build_entry_exit",
]
