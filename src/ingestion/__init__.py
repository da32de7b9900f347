"""
Package marker for the bill ingestion pipeline in `src.ingestion`.
It groups the record model, format adapters, dispatcher, loader and controller under one import path.
Most functionality lives in the sibling modules; this file intentionally stays lightweight.
"""
