"""
Package marker for source code under `src`.
It groups the bill ingestion pipeline and its shared helpers under a stable import path.
Most functionality lives in the sibling packages; this file intentionally stays lightweight.
"""
