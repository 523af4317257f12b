"""mono-release: atomic releases of multi-module repositories."""
