"""
Market summary package for downloading the daily exchange summary file,
decompressing it, and storing its rows in a local SQLite database.

Modules:
- errors: Exception taxonomy for fetch, decode, row and persistence failures
- downloader: Fetch the raw file over HTTP and sniff ZIP/GZIP framing
- parsing: Pipe-delimited row reader and MarketRecord conversion
- db: Schema creation and transactional insert-or-replace of a batch
- data_service: Per-date ingestion facade (fetch -> decode -> store)
- scheduler: Backfill over a date range and the daily 23:00 loop
"""
