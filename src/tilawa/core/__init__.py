"""Core business logic module.

Modules:
- models: Teacher/Student/Recitation records, rating classification
- badges: Badge catalog and badge engine
- progress: Passed pages, page ranges and the Juz grid
- reports: Weekly/monthly reports and detail reports
- quran_data: Page -> (Juz, surah) lookup
- storage: Storage backends (memory, JSON files)
- store: RecitationStore, the only writer of persisted state

Everything except store and storage is pure.
"""

__all__ = [
    "models",
    "badges",
    "progress",
    "reports",
    "quran_data",
    "storage",
    "store",
]
