from duckport.readers.sqlite_reader import SqliteReader

__all__ = ["SqliteReader"]
