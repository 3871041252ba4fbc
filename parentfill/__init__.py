"""Resumable, chunked backfill of revision parent ids."""

__version__ = "0.1.0"
