"""
Sortify - Automatic Downloads folder sorting by file extension.

This package watches a single folder (usually ~/Downloads) and moves each
new or renamed file into a subfolder chosen by its extension:
- Rules map extensions to folder names (first match wins)
- Name collisions get a " (N)" counter before the extension
- Files still locked by their writer are left alone

Settings live in a JSON config file that can be edited while the
watcher is running.
"""

__version__ = "1.0.0"
