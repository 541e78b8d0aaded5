"""Incremental rebuilds: dependency tracking, the rebuild controller,
the serial build executor and the reload broadcaster.
"""
