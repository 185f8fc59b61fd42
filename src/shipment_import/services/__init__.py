"""Import orchestration, progress display and summary rendering."""
