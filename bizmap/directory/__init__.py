from bizmap.directory.state import DirectoryState, categories_of, filter_records

__all__ = ["DirectoryState", "categories_of", "filter_records"]
