"""Bookkeeper - personal reading log

This package contains the application modules:
- Record model (book.py)
- Keyed store on top of sqlite (database.py)
- Display index translation (library.py)
- Interactive command loop (cli.py)
- Typer entry point (main.py)
"""

__version__ = "0.1.0"
